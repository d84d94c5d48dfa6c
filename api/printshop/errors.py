"""Error taxonomy shared by services and route handlers."""

from fastapi import status


class PrintShopError(Exception):
    """Base exception for print shop errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PrintShopError):
    """Bad input: non-numeric id, non-positive quantity, missing field."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(PrintShopError):
    """Referenced order, printer, G-code or file does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PrintShopError):
    """Operation not allowed in the current state."""

    status_code = status.HTTP_409_CONFLICT


class UpstreamError(PrintShopError):
    """Home Assistant or printer API unreachable or misconfigured."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Errore di comunicazione con il servizio esterno"
