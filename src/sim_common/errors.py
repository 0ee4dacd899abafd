"""Error taxonomy for the simulation core.

Every error raised out of a service is an AppError subclass carrying the HTTP
status the API adapter should use. Callers tell the kinds apart by class:

  DomainInvariantError        bad input or a broken business rule (422)
    InsufficientFundsError    available cash too low for a reservation/payment
    InsufficientInventoryError available inventory too low
  NotFoundError               missing company/item/order/node (404)
  ForbiddenError              operation not allowed for this actor (403)
  OptimisticLockConflictError world tick state moved underneath us (409), retry

Infrastructure failures (database unreachable, etc.) are never wrapped.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class DomainInvariantError(AppError):
    def __init__(self, message: str, code: int = 4001) -> None:
        super().__init__(code, message, 422)


class InsufficientFundsError(DomainInvariantError):
    def __init__(self, message: str = "insufficient available cash") -> None:
        super().__init__(message, code=2001)


class InsufficientInventoryError(DomainInvariantError):
    def __init__(self, message: str = "insufficient available inventory") -> None:
        super().__init__(message, code=2002)


class NotFoundError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(4040, message, 404)


class ForbiddenError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(4030, message, 403)


class OptimisticLockConflictError(AppError):
    def __init__(
        self, message: str = "world tick state changed during tick advance; retry operation"
    ) -> None:
        super().__init__(4090, message, 409)
