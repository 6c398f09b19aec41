"""CopySync exception hierarchy.

All custom exceptions inherit from CopySyncError, allowing callers
to catch broad or specific error categories as needed.
"""

from decimal import Decimal


class CopySyncError(Exception):
    """Base exception for all CopySync errors."""

    def __init__(self, message: str = "", account: str | None = None) -> None:
        self.message = message
        self.account = account
        super().__init__(message)


class InvalidInputError(CopySyncError):
    """Raised when configuration or position data is structurally invalid.

    Examples: non-positive copy budget, position list that is not a list,
    scaling factor outside (0, 1].

    Fatal to the call that raised it, never to the process.
    """

    def __init__(
        self,
        message: str = "",
        account: str | None = None,
        field: str | None = None,
    ) -> None:
        self.field = field
        super().__init__(message, account)


class AdapterError(CopySyncError):
    """Raised when an exchange adapter call fails.

    Examples: HTTP timeout, rate limiting, rejected order, unexpected
    response format, missing external id for a close.
    """

    def __init__(
        self,
        message: str = "",
        account: str | None = None,
        status_code: int | None = None,
        service: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.service = service
        super().__init__(message, account)


class InsufficientCapitalError(CopySyncError):
    """Raised when free margin cannot support an action.

    Surfaced as a warning by the sync service; the affected action is
    skipped and the next cycle re-evaluates it.
    """

    def __init__(
        self,
        message: str = "",
        account: str | None = None,
        required: Decimal | None = None,
        available: Decimal | None = None,
    ) -> None:
        self.required = required
        self.available = available
        super().__init__(message, account)
