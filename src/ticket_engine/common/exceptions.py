"""Ticket-Engine exception hierarchy."""


class TicketEngineError(Exception):
    """Base exception for all ticket engine errors."""

    retryable = False

    def __init__(self, message: str = "", code: str = "TICKET_ENGINE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidRequestError(TicketEngineError):
    """Raised when input is malformed; nothing has been mutated."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, code="INVALID_REQUEST")


class TicketNotFoundError(TicketEngineError):
    """Raised when a ticket id or code does not resolve."""

    def __init__(self, message: str = "Ticket not found"):
        super().__init__(message, code="NOT_FOUND")


class InvalidStateError(TicketEngineError):
    """Raised when an operation is not permitted from the ticket's status."""

    def __init__(self, status: str, message: str = ""):
        self.status = status
        super().__init__(message or f"Ticket is {status}", code="INVALID_STATE")


class ChargeReferenceMissingError(TicketEngineError):
    """Raised when a paid purchase arrives without a charge reference."""

    def __init__(self, message: str = "Payment confirmation is required for a paid ticket"):
        super().__init__(message, code="CHARGE_REFERENCE_MISSING")


class BusyError(TicketEngineError):
    """Raised when the per-ticket critical section could not be entered in time."""

    retryable = True

    def __init__(self, message: str = "Ticket is busy, retry the scan"):
        super().__init__(message, code="BUSY")


class RefundFailedError(TicketEngineError):
    """Raised when the payment gateway did not confirm a refund."""

    retryable = True

    def __init__(self, message: str = "Refund failed", code: str = "REFUND_FAILED"):
        super().__init__(message, code=code)


class GatewayTimeoutError(RefundFailedError):
    """Raised when the payment gateway did not answer within the bound."""

    def __init__(self, message: str = "Payment gateway timed out"):
        super().__init__(message, code="GATEWAY_TIMEOUT")


class GatewayError(Exception):
    """Raised by payment gateway adapters; the engine wraps it in RefundFailedError."""


class WalletPassError(TicketEngineError):
    """Raised when the wallet pass issuer could not produce a URL."""

    retryable = True

    def __init__(self, message: str = "Wallet pass issuance failed"):
        super().__init__(message, code="WALLET_PASS_FAILED")


class CodeSpaceExhaustedError(TicketEngineError):
    """Raised when no unused ticket code was found within the attempt budget."""

    def __init__(self, message: str = "Could not allocate a unique ticket code"):
        super().__init__(message, code="CODE_ALLOCATION_FAILED")


class CodeCollisionError(TicketEngineError):
    """Raised when a ticket code was taken by a concurrent purchase before the insert landed."""

    retryable = True

    def __init__(self, message: str = "Ticket code already taken"):
        super().__init__(message, code="CODE_COLLISION")
