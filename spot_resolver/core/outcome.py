"""
Outcome type returned by every provider, resolver and service operation.

Expected failures (network errors, not found, invalid links) never cross
component boundaries as raised exceptions. Instead an operation returns
an Outcome that is either a success carrying a value or a failure
carrying a SpotResolverError (or any other exception a provider chose
to report).

Usage:
    outcome = await service.query(link)
    if outcome.ok:
        print(outcome.value.title)
    else:
        print(f"Failed: {outcome.error}")

    # Try a second source only if the first one failed
    outcome = await saavn.find_best_song_download_url(...)
    outcome = await outcome.or_else(lambda error: youtube_music.find_best_download_url(...))
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Success value or failure error, never both.

    Attributes:
        value: The success value. None for failures.
        error: The failure error. None for successes.

    Use the success() and failure() classmethods instead of the
    constructor so the two states can't be mixed up.
    """

    value: T | None = None
    error: BaseException | None = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        """Create a successful outcome."""
        return cls(value=value, error=None)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome[Any]":
        """
        Create a failed outcome.

        Args:
            error: The exception describing the failure. It is stored,
                   not raised.
        """
        if error is None:
            raise ValueError("Outcome.failure() requires an error")
        return cls(value=None, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        """
        Return the value, raising the stored error for failures.

        Useful at the edge of the application (scripts, tests) where an
        exception is the desired behaviour.
        """
        if self.error is not None:
            raise self.error
        return self.value

    def value_or(self, default: U) -> T | U:
        return default if self.error is not None else self.value

    def map(self, fn: Callable[[T], U]) -> "Outcome[U]":
        """Transform the value of a success; failures pass through."""
        if self.error is not None:
            return self
        return Outcome.success(fn(self.value))

    async def or_else(
        self,
        fn: Callable[[BaseException], Awaitable["Outcome[T]"]]
    ) -> "Outcome[T]":
        """
        Recover from a failure with another asynchronous attempt.

        Args:
            fn: Called with the error only when this outcome failed.
                Its awaited result replaces this outcome.

        Returns:
            This outcome if it succeeded, otherwise the outcome of fn.
        """
        if self.error is None:
            return self
        return await fn(self.error)
