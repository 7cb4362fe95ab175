# ABOUTME: Explicit success/failure result returned by library and index mutations.
# ABOUTME: Keeps storage errors on the caller's side of the reactive-stream boundary.

from dataclasses import dataclass

from deadly.errors import DeadlyError


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a single mutation.

    A failed result carries the typed error; committed state is untouched.
    """

    success: bool
    error: DeadlyError | None = None

    @classmethod
    def ok(cls) -> "OperationResult":
        return cls(success=True)

    @classmethod
    def fail(cls, error: DeadlyError) -> "OperationResult":
        return cls(success=False, error=error)

    @property
    def message(self) -> str:
        """Human-readable error message, empty on success."""
        return str(self.error) if self.error is not None else ""

    def __bool__(self) -> bool:
        return self.success
