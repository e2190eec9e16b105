from __future__ import annotations


class RelayError(Exception):
    """Base class for every error a relay request can resolve with."""


class ValidationError(RelayError):
    """Raised when a request cannot possibly succeed (bad action or payload).

    Never retried, and raised before any nonce is allocated.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class NonceConflictError(RelayError):
    """Raised when the chain rejects a transaction for a stale nonce."""

    def __init__(self, nonce: int, cause: BaseException | None = None) -> None:
        self.nonce = nonce
        self.cause = cause
        super().__init__(f"Nonce {nonce} rejected as stale: {cause}")


class SubmissionError(RelayError):
    """Raised when a transaction could not be submitted. Terminal for that request."""

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        nonce: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.operation = operation
        self.nonce = nonce
        self.cause = cause
        super().__init__(f"{operation} failed: {message}")


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing or invalid."""

    def __init__(self, missing: list[str], detail: str | None = None) -> None:
        self.missing = missing
        msg = "Relayer configuration missing or invalid"
        if missing:
            msg += f": {', '.join(missing)}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)
