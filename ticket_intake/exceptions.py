"""
Domain exceptions for the ticket intake service
"""


class TicketIntakeError(Exception):
    """Base error for ticket intake issues"""


class TicketValidationError(TicketIntakeError):
    """Raised when a ticket submission is missing required fields"""


class TicketNotFoundError(TicketIntakeError):
    """Raised when a ticket could not be located"""


class TicketStoreError(TicketIntakeError):
    """Raised when the ticket store rejects or fails a write"""


class GatewayError(TicketIntakeError):
    """Raised when a messaging or social API reports a failure"""

    def __init__(self, message: str, status_code: int = None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
