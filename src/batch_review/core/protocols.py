"""Type protocols for batch review collaborators."""

from typing import Any, Protocol, TypeVar

TOutput = TypeVar("TOutput", covariant=True)


class JobProcessor(Protocol[TOutput]):
    """Protocol that any per-target analysis job must satisfy."""

    async def process(self, target: str, content: str | None = None) -> TOutput:
        """Analyze one target and return its outcome.

        Args:
            target: Identifier of the unit of work (usually a file path)
            content: Target content when the caller supplied it, else None

        Raises:
            Any exception; the executor classifies it into a ReviewError
        """
        ...


class SleepFunc(Protocol):
    """Awaitable sleep used between retry attempts."""

    def __call__(self, delay: float) -> Any:
        ...
