"""Home Assistant REST client.

Reads entity states and calls services through the Home Assistant REST API
(``/api/states``, ``/api/services/<domain>/<service>``). The connection comes
from the config store and is passed in per request, so a changed URL or
token is picked up immediately.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from printshop.config import Settings, settings as default_settings
from printshop.errors import UpstreamError, ValidationError
from printshop.models.home_assistant_config import HomeAssistantConfig
from printshop.schemas.home_assistant import ControlResult, PrinterEntity, PrinterService, PrinterState

logger = logging.getLogger(__name__)

# Home Assistant domain receiving printer services
PRINTER_DOMAIN = "printer"

_STATE_MAP = {
    "idle": PrinterState.IDLE,
    "ready": PrinterState.IDLE,
    "printing": PrinterState.PRINTING,
    "print": PrinterState.PRINTING,
    "paused": PrinterState.PAUSED,
    "pause": PrinterState.PAUSED,
    "error": PrinterState.ERROR,
    "error_state": PrinterState.ERROR,
}


def map_entity_state(ha_state: Any) -> str:
    """Map a raw Home Assistant state to a PrinterState; unknown states are offline."""
    if not ha_state:
        return PrinterState.OFFLINE
    return _STATE_MAP.get(str(ha_state).lower(), PrinterState.OFFLINE)


class HomeAssistantClient:
    """Thin async client over the Home Assistant REST API.

    Args:
        config: Active HomeAssistantConfig row, or None if not configured
        http_client: Shared httpx.AsyncClient owned by the application
        settings: Settings providing the request timeout and printer patterns
    """

    def __init__(
        self,
        config: Optional[HomeAssistantConfig],
        http_client: httpx.AsyncClient,
        settings: Settings = default_settings,
    ):
        self.config = config
        self.http_client = http_client
        self.settings = settings

    def _connection(self):
        if self.config is None or not self.config.base_url or not self.config.has_access_token:
            raise UpstreamError("Home Assistant non configurato")
        try:
            token = self.config.access_token
        except ValueError as e:
            raise UpstreamError(f"Home Assistant token non leggibile: {e}")
        return self.config.base_url.rstrip("/"), token

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        base_url, token = self._connection()
        url = f"{base_url}/api/{path}"
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

        try:
            response = await self.http_client.request(
                method,
                url,
                headers=headers,
                json=payload,
                timeout=self.settings.http_timeout_seconds,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"Home Assistant timeout on {method} {path}: {e}")
            raise UpstreamError(f"Home Assistant timeout: {path}")
        except httpx.HTTPStatusError as e:
            logger.error(f"Home Assistant returned {e.response.status_code} on {method} {path}")
            raise UpstreamError(f"Home Assistant API error: {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Home Assistant unreachable on {method} {path}: {e}")
            raise UpstreamError(f"Home Assistant non raggiungibile: {e}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise UpstreamError(f"Home Assistant returned invalid JSON on {path}")

    async def get_states(self) -> List[Dict[str, Any]]:
        """All entity states."""
        states = await self._request("GET", "states")
        if isinstance(states, dict):
            return list(states.values())
        return states or []

    async def get_entity_state(self, entity_id: str) -> Dict[str, Any]:
        """State of a single entity."""
        return await self._request("GET", f"states/{entity_id}")

    async def call_service(self, domain: str, service: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke ``domain.service`` with the given service data."""
        return await self._request("POST", f"services/{domain}/{service}", data or {})

    def is_printer_entity(self, entity_id: str) -> bool:
        """Whether an entity id looks like a printer sensor."""
        object_id = entity_id.split(".", 1)[-1]
        prefix = self.config.entity_prefix if self.config is not None else None
        if prefix and object_id.startswith(prefix):
            return True
        return any(pattern in object_id for pattern in self.settings.ha_printer_patterns)

    async def get_available_printers(self) -> List[PrinterEntity]:
        """List printer entities known to Home Assistant.

        Raises:
            UpstreamError: If Home Assistant is not configured or the call fails
        """
        states = await self.get_states()

        printers = []
        for entity in states:
            entity_id = entity.get("entity_id", "")
            if not self.is_printer_entity(entity_id):
                continue
            attributes = entity.get("attributes") or {}
            printers.append(
                PrinterEntity(
                    entity_id=entity_id,
                    state=map_entity_state(entity.get("state")),
                    friendly_name=attributes.get("friendly_name"),
                    attributes=attributes,
                    last_updated=entity.get("last_updated"),
                )
            )

        logger.info(f"Found {len(printers)} printer entities out of {len(states)} in Home Assistant")
        return printers

    async def control_printer(
        self, entity_id: str, service: str, data: Optional[Dict[str, Any]] = None
    ) -> ControlResult:
        """Call a printer service on an entity.

        Remote failures are reported in the result, not raised.

        Raises:
            ValidationError: If the service is not a printer service
            UpstreamError: If Home Assistant is not configured
        """
        if service not in PrinterService.ALL:
            raise ValidationError(f"Servizio non supportato: {service}")
        self._connection()

        payload = dict(data or {})
        payload["entity_id"] = entity_id
        try:
            result = await self.call_service(PRINTER_DOMAIN, service, payload)
        except UpstreamError as e:
            logger.warning(f"Printer service {service} failed on {entity_id}: {e.message}")
            return ControlResult(success=False, error=e.message)

        logger.info(f"Printer service {service} called on {entity_id}")
        return ControlResult(success=True, result=result)
