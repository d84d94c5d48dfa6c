"""Printer telemetry adapters.

A ``TelemetryAdapter`` turns a Stampante row into a fresh StampanteStatus and
forwards direct control commands. The live adapter talks to the printer
(Klipper through Moonraker, Bambu through its local API) or to Home
Assistant when the printer is tracked there; the simulated adapter returns
random snapshots for tests and demos. Nothing is cached between calls.
"""

import logging
import random
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from printshop.config import Settings, settings as default_settings
from printshop.errors import UpstreamError, ValidationError
from printshop.models.home_assistant_config import HomeAssistantConfig
from printshop.models.stampante import Stampante
from printshop.schemas.home_assistant import ControlResult, PrinterState
from printshop.schemas.stampante import StampanteStatus, StatoStampante, TipoSistema
from printshop.services.home_assistant import HomeAssistantClient, map_entity_state

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Stampante non configurata per API"

# Moonraker print_stats.state -> printer state
_KLIPPER_STATES = {
    "printing": StatoStampante.IN_STAMPA,
    "paused": StatoStampante.PAUSA,
    "error": StatoStampante.ERRORE,
    "standby": StatoStampante.PRONTA,
    "complete": StatoStampante.PRONTA,
    "cancelled": StatoStampante.PRONTA,
}

_BAMBU_STATES = {
    "idle": StatoStampante.PRONTA,
    "finish": StatoStampante.PRONTA,
    "pronta": StatoStampante.PRONTA,
    "running": StatoStampante.IN_STAMPA,
    "printing": StatoStampante.IN_STAMPA,
    "in_stampa": StatoStampante.IN_STAMPA,
    "pause": StatoStampante.PAUSA,
    "paused": StatoStampante.PAUSA,
    "pausa": StatoStampante.PAUSA,
    "failed": StatoStampante.ERRORE,
    "error": StatoStampante.ERRORE,
    "errore": StatoStampante.ERRORE,
}

_HA_STATES = {
    PrinterState.IDLE: StatoStampante.PRONTA,
    PrinterState.PRINTING: StatoStampante.IN_STAMPA,
    PrinterState.PAUSED: StatoStampante.PAUSA,
    PrinterState.ERROR: StatoStampante.ERRORE,
    PrinterState.OFFLINE: StatoStampante.OFFLINE,
}

# Moonraker endpoints for each control action
_KLIPPER_ACTIONS = {
    "start_print": "/printer/print/start",
    "pause_print": "/printer/print/pause",
    "resume_print": "/printer/print/resume",
    "cancel_print": "/printer/print/cancel",
    "set_temperature": "/printer/gcode/script",
    "set_bed_temperature": "/printer/gcode/script",
}

_BAMBU_ACTIONS = {
    "start_print": "/print/start",
    "pause_print": "/print/pause",
    "resume_print": "/print/resume",
    "cancel_print": "/print/cancel",
}


def _number(value: Any) -> Optional[float]:
    """Numeric reading from an upstream payload; None when missing or not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def offline_status(stampante_id: int, error: str) -> StampanteStatus:
    """Snapshot for a printer we could not read."""
    return StampanteStatus(
        stampante_id=stampante_id,
        stato=StatoStampante.OFFLINE,
        ultimo_aggiornamento=datetime.utcnow(),
        error=error,
    )


class TelemetryAdapter(ABC):
    """Source of live printer status and control."""

    @abstractmethod
    async def get_status(
        self, stampante: Stampante, ha_config: Optional[HomeAssistantConfig] = None
    ) -> StampanteStatus:
        pass

    @abstractmethod
    async def control(
        self,
        stampante: Stampante,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        ha_config: Optional[HomeAssistantConfig] = None,
    ) -> ControlResult:
        pass


class LiveTelemetryAdapter(TelemetryAdapter):
    """Reads status from the printer API or from Home Assistant."""

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings = default_settings):
        self.http_client = http_client
        self.settings = settings

    def _headers(self, stampante: Stampante) -> Dict[str, str]:
        try:
            api_key = stampante.api_key
        except ValueError:
            raise UpstreamError("Chiave API della stampante non leggibile")
        if not api_key:
            return {}
        if stampante.tipo_sistema == TipoSistema.BAMBU:
            return {"Authorization": f"Bearer {api_key}"}
        return {"X-Api-Key": api_key}

    async def _get_json(self, stampante: Stampante, path: str) -> Dict[str, Any]:
        url = f"{stampante.endpoint_api.rstrip('/')}{path}"
        try:
            response = await self.http_client.get(
                url, headers=self._headers(stampante), timeout=self.settings.http_timeout_seconds
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            raise UpstreamError(f"Timeout contattando {stampante.nome}")
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise UpstreamError(f"Errore di connessione: {e}")
        except ValueError:
            raise UpstreamError("Risposta non valida dalla stampante")

    async def get_status(
        self, stampante: Stampante, ha_config: Optional[HomeAssistantConfig] = None
    ) -> StampanteStatus:
        """Fresh status snapshot; failures come back as an offline snapshot."""
        try:
            if stampante.endpoint_api and stampante.tipo_sistema == TipoSistema.KLIPPER:
                return await self._klipper_status(stampante)
            if stampante.endpoint_api and stampante.tipo_sistema == TipoSistema.BAMBU:
                return await self._bambu_status(stampante)
            if stampante.ha_entity_id:
                return await self._home_assistant_status(stampante, ha_config)
        except UpstreamError as e:
            logger.warning(f"Status of printer {stampante.id} unavailable: {e.message}")
            return offline_status(stampante.id, e.message)
        except (TypeError, ValueError) as e:
            logger.warning(f"Status of printer {stampante.id} not readable: {e}")
            return offline_status(stampante.id, "Risposta di stato non valida")

        return offline_status(stampante.id, NOT_CONFIGURED)

    async def _klipper_status(self, stampante: Stampante) -> StampanteStatus:
        data = _mapping(
            await self._get_json(
                stampante, "/printer/objects/query?extruder&heater_bed&print_stats&virtual_sdcard&fan"
            )
        )
        result = _mapping(_mapping(data.get("result")).get("status"))
        print_stats = _mapping(result.get("print_stats"))
        raw_state = str(print_stats.get("state") or "").lower()

        stato = _KLIPPER_STATES.get(raw_state)
        if stato is None:
            return offline_status(stampante.id, f"Stato Klipper sconosciuto: {raw_state or 'n/d'}")

        status = StampanteStatus(
            stampante_id=stampante.id,
            stato=stato,
            temperatura_nozzle=_number(_mapping(result.get("extruder")).get("temperature")),
            temperatura_piatto=_number(_mapping(result.get("heater_bed")).get("temperature")),
            ultimo_aggiornamento=datetime.utcnow(),
        )
        fan_speed = _number(_mapping(result.get("fan")).get("speed"))
        if fan_speed is not None:
            status.velocita_ventola = round(fan_speed * 100, 1)

        if stato == StatoStampante.IN_STAMPA:
            progress = _number(_mapping(result.get("virtual_sdcard")).get("progress")) or 0.0
            elapsed = _number(print_stats.get("print_duration")) or 0.0
            status.percentuale_completamento = round(progress * 100, 1)
            status.nome_file_corrente = _text(print_stats.get("filename"))
            if progress > 0:
                total = elapsed / progress
                status.tempo_totale = round(total)
                status.tempo_rimanente = round(total - elapsed)
        return status

    async def _bambu_status(self, stampante: Stampante) -> StampanteStatus:
        data = _mapping(await self._get_json(stampante, "/device/status"))
        raw_state = str(data.get("state") or "").lower()

        stato = _BAMBU_STATES.get(raw_state)
        if stato is None:
            return offline_status(stampante.id, f"Stato Bambu sconosciuto: {raw_state or 'n/d'}")

        temperature = _mapping(data.get("temperature"))
        progress = _mapping(data.get("progress"))
        return StampanteStatus(
            stampante_id=stampante.id,
            stato=stato,
            temperatura_nozzle=_number(temperature.get("nozzle")),
            temperatura_piatto=_number(temperature.get("bed")),
            temperatura_camera=_number(temperature.get("chamber")),
            percentuale_completamento=_number(progress.get("percentage")),
            tempo_rimanente=_number(progress.get("remaining_time")),
            tempo_totale=_number(progress.get("total_time")),
            velocita_ventola=_number(data.get("fan_speed")),
            nome_file_corrente=_text(data.get("current_file")),
            ultimo_aggiornamento=datetime.utcnow(),
        )

    async def _home_assistant_status(
        self, stampante: Stampante, ha_config: Optional[HomeAssistantConfig]
    ) -> StampanteStatus:
        client = HomeAssistantClient(ha_config, self.http_client, self.settings)
        entity = _mapping(await client.get_entity_state(stampante.ha_entity_id))
        attributes = _mapping(entity.get("attributes"))

        ha_state = map_entity_state(entity.get("state"))
        if ha_state == PrinterState.OFFLINE:
            return offline_status(stampante.id, f"Entità {stampante.ha_entity_id} non disponibile")

        elapsed = _number(attributes.get("time_elapsed"))
        remaining = _number(attributes.get("time_remaining"))
        nozzle = attributes.get("hotend_temperature", attributes.get("current_temperature"))
        return StampanteStatus(
            stampante_id=stampante.id,
            stato=_HA_STATES[ha_state],
            temperatura_nozzle=_number(nozzle),
            temperatura_piatto=_number(attributes.get("bed_temperature")),
            temperatura_camera=_number(attributes.get("chamber_temperature")),
            percentuale_completamento=_number(attributes.get("print_progress")),
            tempo_rimanente=remaining,
            tempo_totale=elapsed + remaining if elapsed is not None and remaining is not None else None,
            velocita_ventola=_number(attributes.get("fan_speed")),
            velocita_estrusore=_number(attributes.get("flow_rate")),
            nome_file_corrente=_text(attributes.get("current_file")),
            ultimo_aggiornamento=datetime.utcnow(),
        )

    async def control(
        self,
        stampante: Stampante,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        ha_config: Optional[HomeAssistantConfig] = None,
    ) -> ControlResult:
        """Send a command to the printer.

        Raises:
            ValidationError: If the printer cannot be controlled or the action
                is not supported by its system
            UpstreamError: If the printer is controlled through Home Assistant
                and Home Assistant is not configured
        """
        params = params or {}

        if stampante.endpoint_api and stampante.tipo_sistema == TipoSistema.KLIPPER:
            path = _KLIPPER_ACTIONS.get(action)
            payload: Dict[str, Any] = {}
            if action == "start_print":
                payload = {"filename": params.get("filename")}
            elif action == "set_temperature":
                payload = {"script": f"SET_HEATER_TEMPERATURE HEATER=extruder TARGET={params.get('temperature')}"}
            elif action == "set_bed_temperature":
                payload = {"script": f"SET_HEATER_TEMPERATURE HEATER=heater_bed TARGET={params.get('temperature')}"}
        elif stampante.endpoint_api and stampante.tipo_sistema == TipoSistema.BAMBU:
            path = _BAMBU_ACTIONS.get(action)
            payload = {"file_id": params.get("file_id")} if action == "start_print" else {}
        elif stampante.ha_entity_id:
            client = HomeAssistantClient(ha_config, self.http_client, self.settings)
            return await client.control_printer(stampante.ha_entity_id, action, params)
        else:
            raise ValidationError(NOT_CONFIGURED)

        if path is None:
            raise ValidationError(f"Azione non supportata: {action}")

        url = f"{stampante.endpoint_api.rstrip('/')}{path}"
        try:
            response = await self.http_client.post(
                url,
                headers=self._headers(stampante),
                json=payload or None,
                timeout=self.settings.control_timeout_seconds,
            )
            response.raise_for_status()
            result = response.json() if response.content else None
        except httpx.HTTPStatusError as e:
            logger.warning(f"Control {action} on printer {stampante.id} failed: HTTP {e.response.status_code}")
            return ControlResult(success=False, error=f"HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Control {action} on printer {stampante.id} failed: {e}")
            return ControlResult(success=False, error="Errore di connessione")

        logger.info(f"Control {action} sent to printer {stampante.id}")
        return ControlResult(success=True, result=result)


class SimulatedTelemetryAdapter(TelemetryAdapter):
    """Random telemetry for tests and demos; never selected in production."""

    def __init__(self, seed: Optional[int] = None):
        self.random = random.Random(seed)

    async def get_status(
        self, stampante: Stampante, ha_config: Optional[HomeAssistantConfig] = None
    ) -> StampanteStatus:
        rnd = self.random
        stato = rnd.choice(
            [StatoStampante.PRONTA, StatoStampante.IN_STAMPA, StatoStampante.PAUSA, StatoStampante.ERRORE]
        )
        status = StampanteStatus(
            stampante_id=stampante.id,
            stato=stato,
            temperatura_nozzle=round(rnd.uniform(180, 240), 1),
            temperatura_piatto=round(rnd.uniform(50, 90), 1),
            temperatura_camera=round(rnd.uniform(20, 40), 1),
            velocita_ventola=round(rnd.uniform(0, 100)),
            velocita_estrusore=round(rnd.uniform(80, 120)),
            ultimo_aggiornamento=datetime.utcnow(),
        )
        if stato == StatoStampante.IN_STAMPA:
            total = rnd.randint(30, 480) * 60
            progress = rnd.uniform(0, 100)
            status.percentuale_completamento = round(progress, 1)
            status.tempo_totale = total
            status.tempo_rimanente = round(total * (100 - progress) / 100)
            status.nome_file_corrente = f"simulated_{stampante.id}.gcode"
        return status

    async def control(
        self,
        stampante: Stampante,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        ha_config: Optional[HomeAssistantConfig] = None,
    ) -> ControlResult:
        logger.info(f"Simulated control {action} on printer {stampante.id}")
        return ControlResult(success=True, result={"action": action, "simulated": True})


def build_telemetry_adapter(settings: Settings, http_client: httpx.AsyncClient) -> TelemetryAdapter:
    """Select the adapter configured by ``telemetry_mode``.

    Raises:
        ValueError: On an unknown mode, or simulated telemetry in production
    """
    mode = settings.telemetry_mode.lower()
    if mode == "live":
        return LiveTelemetryAdapter(http_client, settings)
    if mode == "simulated":
        if settings.is_production:
            raise ValueError("Simulated telemetry cannot be used in production")
        logger.warning("Using simulated printer telemetry")
        return SimulatedTelemetryAdapter()
    raise ValueError(f"Unknown telemetry mode: {settings.telemetry_mode}")
