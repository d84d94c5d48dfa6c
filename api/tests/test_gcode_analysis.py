"""G-code metadata extraction tests."""

import io
import zipfile

import pytest

from printshop.services.gcode_analysis import (
    GcodeAnalysis,
    GcodeAnalysisError,
    analyze_gcode,
    parse_duration,
    parse_gcode_text,
)

PRUSA_GCODE = """; generated by PrusaSlicer 2.7.1
G28
G1 X10 Y10
; filament used [mm] = 4123.45
; filament used [g] = 12.34
; estimated printing time (normal mode) = 1h 2m 3s
; filament_type = PETG
; printer_model = MK4
"""

BAMBU_GCODE = """; HEADER_BLOCK_START
; BambuStudio 01.09.00.70
; model printing time: 1h 5m; total estimated time: 1h 10m 40s
; total filament weight [g] : 20.1,5.2
; HEADER_BLOCK_END
G28
; CONFIG_BLOCK_START
; filament_type = PLA;PETG
; printer_settings_id = Bambu Lab X1 Carbon 0.4 nozzle
; CONFIG_BLOCK_END
"""

CURA_GCODE = """;FLAVOR:Marlin
;TIME:5400
;Filament used: 1.5m
G28
"""

SLICE_INFO = b"""<?xml version="1.0" encoding="UTF-8"?>
<config>
  <plate>
    <metadata key="index" value="1"/>
    <metadata key="printer_model_id" value="C11"/>
    <metadata key="prediction" value="3600"/>
    <metadata key="weight" value="15.5"/>
    <filament id="1" type="PLA" color="#FFFFFF" used_m="5.1" used_g="15.5"/>
  </plate>
  <plate>
    <metadata key="index" value="2"/>
    <metadata key="prediction" value="1800"/>
    <metadata key="weight" value="4.5"/>
    <filament id="2" type="PETG" color="#000000" used_m="1.4" used_g="4.5"/>
    <filament id="3" type="PLA" color="#FF0000" used_m="0.2" used_g="0.6"/>
  </plate>
</config>
"""


def _archive(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.mark.parametrize(
    "text, minutes",
    [
        ("1h 2m 3s", 62),
        ("2d 3h", 3060),
        ("45m", 45),
        ("120", 2),
        ("n/a", None),
    ],
)
def test_parse_duration(text, minutes):
    assert parse_duration(text) == minutes


def test_prusaslicer_header():
    result = parse_gcode_text(PRUSA_GCODE)
    assert result == GcodeAnalysis(peso_grammi=12.34, tempo_stampa_min=62, materiale="PETG", stampante="MK4")


def test_bambu_header_sums_weights_and_uses_total_time():
    result = parse_gcode_text(BAMBU_GCODE)
    assert result.peso_grammi == pytest.approx(25.3)
    assert result.tempo_stampa_min == 71
    assert result.materiale == "PLA"
    assert result.stampante == "Bambu Lab X1 Carbon 0.4 nozzle"


def test_cura_time_fallback():
    result = parse_gcode_text(CURA_GCODE)
    assert result.tempo_stampa_min == 90
    assert result.peso_grammi is None
    assert result.materiale is None


def test_plain_gcode_without_metadata():
    result = analyze_gcode("vuoto.gcode", b"G28\nG1 X0 Y0\n")
    assert result.is_empty


def test_gcode_3mf_slice_info():
    content = _archive({"Metadata/slice_info.config": SLICE_INFO, "3D/3dmodel.model": "<model/>"})

    result = analyze_gcode("coperchio.gcode.3mf", content)

    assert result.peso_grammi == pytest.approx(20.0)
    assert result.tempo_stampa_min == 90
    assert result.materiale == "PLA, PETG"
    assert result.stampante == "C11"


def test_gcode_3mf_embedded_plate_fills_gaps():
    content = _archive({"Metadata/plate_1.gcode": PRUSA_GCODE})

    result = analyze_gcode("acme/staffe/staffa/plate.gcode.3mf", content)

    assert result.as_dict() == {"peso_grammi": 12.34, "tempo_stampa_min": 62, "materiale": "PETG", "stampante": "MK4"}


def test_invalid_3mf_archive():
    with pytest.raises(GcodeAnalysisError):
        analyze_gcode("rotto.gcode.3mf", b"not a zip at all")


def test_fill_missing_keeps_existing_values():
    result = GcodeAnalysis(peso_grammi=10.0)
    result.fill_missing(GcodeAnalysis(peso_grammi=99.0, materiale="ASA"))
    assert result.peso_grammi == 10.0
    assert result.materiale == "ASA"
