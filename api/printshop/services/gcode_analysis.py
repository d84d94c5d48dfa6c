"""G-code metadata extraction.

Reads the comment blocks slicers write into G-code (PrusaSlicer, OrcaSlicer,
Bambu Studio, Cura) and the ``Metadata/slice_info.config`` file of Bambu
``.gcode.3mf`` archives, and extracts weight in grams, print time in
minutes, material and printer name.
"""

import io
import logging
import re
import zipfile
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional
from xml.etree import ElementTree

logger = logging.getLogger(__name__)

# Only the header and the trailing config block carry metadata
HEAD_BYTES = 64 * 1024
TAIL_BYTES = 256 * 1024

_KEY_VALUE = re.compile(r"^;\s*([^=:]+?)\s*[=:]\s*(.+?)\s*$")
_DURATION_PART = re.compile(r"(\d+)\s*([dhms])")

_WEIGHT_KEYS = ("total filament weight [g]", "filament used [g]", "total filament used [g]")
_TIME_KEYS = ("estimated printing time (normal mode)", "total estimated time")
_MATERIAL_KEYS = ("filament_type", "filament type")
_PRINTER_KEYS = ("printer_model", "printer_settings_id", "target_machine.name", "machine_name")


class GcodeAnalysisError(Exception):
    """File could not be read as G-code or .gcode.3mf."""

    pass


@dataclass
class GcodeAnalysis:
    """Metadata extracted from one G-code file."""

    peso_grammi: Optional[float] = None
    tempo_stampa_min: Optional[int] = None
    materiale: Optional[str] = None
    stampante: Optional[str] = None

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in asdict(self).values())

    def fill_missing(self, other: "GcodeAnalysis") -> None:
        """Copy fields from ``other`` that are still None here."""
        for key, value in asdict(other).items():
            if getattr(self, key) is None and value is not None:
                setattr(self, key, value)


def parse_duration(text: str) -> Optional[int]:
    """Parse ``1d 2h 3m 4s`` (or plain seconds) into whole minutes."""
    text = text.strip()
    if text.isdigit():
        return round(int(text) / 60)

    seconds = 0
    found = False
    for amount, unit in _DURATION_PART.findall(text):
        found = True
        seconds += int(amount) * {"d": 86400, "h": 3600, "m": 60, "s": 1}[unit]
    return round(seconds / 60) if found else None


def _sum_numbers(text: str) -> Optional[float]:
    values = []
    for part in re.split(r"[,;]", text):
        try:
            values.append(float(part.strip()))
        except ValueError:
            continue
    return round(sum(values), 2) if values else None


def _first_value(text: str) -> Optional[str]:
    for part in text.split(";"):
        part = part.strip().strip('"')
        if part:
            return part
    return None


def _comment_lines(text: str) -> List[str]:
    return [line for line in text.splitlines() if line.startswith(";")]


def parse_gcode_text(text: str) -> GcodeAnalysis:
    """Extract metadata from plain G-code text."""
    result = GcodeAnalysis()

    for line in _comment_lines(text):
        # Bambu/Orca put two timings on one line separated by ';'
        if "printing time" in line and ";" in line[1:]:
            for chunk in line[1:].split(";"):
                _apply(result, f"; {chunk.strip()}")
            continue
        _apply(result, line)

    if result.tempo_stampa_min is None:
        match = re.search(r"^;TIME:(\d+)", text, re.MULTILINE)
        if match:
            result.tempo_stampa_min = round(int(match.group(1)) / 60)

    return result


def _apply(result: GcodeAnalysis, line: str) -> None:
    match = _KEY_VALUE.match(line)
    if not match:
        return
    key, value = match.group(1).strip().lower(), match.group(2)

    if key in _WEIGHT_KEYS and result.peso_grammi is None:
        result.peso_grammi = _sum_numbers(value)
    elif key in _TIME_KEYS and result.tempo_stampa_min is None:
        result.tempo_stampa_min = parse_duration(value)
    elif key in _MATERIAL_KEYS and result.materiale is None:
        result.materiale = _first_value(value)
    elif key in _PRINTER_KEYS and result.stampante is None:
        result.stampante = _first_value(value)


def _decode(content: bytes) -> str:
    if len(content) > HEAD_BYTES + TAIL_BYTES:
        content = content[:HEAD_BYTES] + b"\n" + content[-TAIL_BYTES:]
    return content.decode("utf-8", errors="replace")


def parse_slice_info(xml_content: bytes) -> GcodeAnalysis:
    """Parse ``Metadata/slice_info.config``; plates are summed."""
    try:
        root = ElementTree.fromstring(xml_content)
    except ElementTree.ParseError as e:
        raise GcodeAnalysisError(f"Invalid slice_info.config: {e}")

    result = GcodeAnalysis()
    weight = 0.0
    seconds = 0
    materials: List[str] = []

    for plate in root.iter("plate"):
        meta = {m.get("key"): m.get("value") for m in plate.findall("metadata")}
        try:
            weight += float(meta.get("weight") or 0)
            seconds += int(float(meta.get("prediction") or 0))
        except ValueError:
            logger.warning(f"Unreadable plate metadata in slice_info.config: {meta}")
        if result.stampante is None and meta.get("printer_model_id"):
            result.stampante = meta["printer_model_id"]
        for filament in plate.findall("filament"):
            material = filament.get("type")
            if material and material not in materials:
                materials.append(material)

    if weight:
        result.peso_grammi = round(weight, 2)
    if seconds:
        result.tempo_stampa_min = round(seconds / 60)
    if materials:
        result.materiale = ", ".join(materials)
    return result


def parse_gcode_3mf(content: bytes) -> GcodeAnalysis:
    """Extract metadata from a ``.gcode.3mf`` archive."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(content))
    except zipfile.BadZipFile as e:
        raise GcodeAnalysisError(f"Not a .gcode.3mf archive: {e}")

    with archive:
        names = archive.namelist()
        result = GcodeAnalysis()
        if "Metadata/slice_info.config" in names:
            result = parse_slice_info(archive.read("Metadata/slice_info.config"))

        # Embedded plate G-code names the printer model and fills any gaps
        for name in sorted(n for n in names if n.startswith("Metadata/") and n.endswith(".gcode")):
            result.fill_missing(parse_gcode_text(_decode(archive.read(name))))
            if None not in (result.peso_grammi, result.tempo_stampa_min, result.materiale, result.stampante):
                break

    return result


def analyze_gcode(filename: str, content: bytes) -> GcodeAnalysis:
    """Analyze a G-code or ``.gcode.3mf`` file.

    Args:
        filename: File name or storage key, used to detect the format
        content: Raw file bytes

    Returns:
        Extracted metadata; fields the file does not carry stay None

    Raises:
        GcodeAnalysisError: If a ``.3mf`` file is not a valid archive
    """
    if filename.lower().endswith(".3mf") or content[:2] == b"PK":
        analysis = parse_gcode_3mf(content)
    else:
        analysis = parse_gcode_text(_decode(content))

    logger.info(f"Analyzed {filename}: {analysis.as_dict()}")
    return analysis
