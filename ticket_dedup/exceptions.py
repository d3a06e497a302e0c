"""
Exception hierarchy for the related ticket finder
"""


class TicketDedupError(Exception):
    """Base error for this service"""


class TicketRepositoryError(TicketDedupError):
    """A read or write against the local ticket store failed"""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Ticket store error during {operation}: {cause}")


class TicketSourceError(TicketDedupError):
    """The external ticket source returned an unusable response"""
