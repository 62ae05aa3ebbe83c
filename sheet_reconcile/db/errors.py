from __future__ import annotations

"""Store-level exceptions."""

__all__ = [
    "StoreUnavailableError",
]


class StoreUnavailableError(Exception):
    """The persistence layer failed (connection lost, statement error, ...).

    Raised by every store method in place of the driver exception, which is
    kept as ``__cause__``. Callers decide whether to re-run; stores never retry.
    """

    def __init__(self, operation: str, cause: BaseException | str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {cause}")
