"""Python client for the print shop API."""

from printshop.client.api_client import ApiClientError, PrintShopClient
from printshop.client.poller import StatusPoller

__all__ = ["ApiClientError", "PrintShopClient", "StatusPoller"]
