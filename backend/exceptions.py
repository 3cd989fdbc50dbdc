"""
Custom exception classes for Solana ledger and payment operations.
"""


class InvalidAddressError(ValueError):
    """Raised when a recipient, mint or reference is not a valid public key."""

    def __init__(self, address, field: str = "address"):
        self.address = address
        self.field = field
        shown = f"{address[:12]}..." if isinstance(address, str) and len(address) > 12 else address
        super().__init__(f"Invalid {field}: {shown!r}")


class ParseURLError(ValueError):
    """Raised when a transfer-request URI cannot be parsed."""
    pass


class LedgerTransportError(Exception):
    """Raised when the RPC node is unreachable or returns a malformed response."""

    def __init__(self, message: str, method: str | None = None):
        self.method = method
        super().__init__(f"{method}: {message}" if method else message)


class TransferValidationError(Exception):
    """Raised when a located transaction does not carry the expected transfer."""

    def __init__(self, reason, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason.value)


class InvalidTransitionError(RuntimeError):
    """Raised when a payment session is asked to move to an illegal status."""
    pass
