"""
Diagnostic trace accumulated while resolving a download link.

Each resolution run owns one DiagnosticTrace. Every stage that fails (or
is skipped for a noteworthy reason) appends a TraceEntry; entries are
never removed or reordered. When all stages are exhausted the trace
becomes the payload of DownloadLinkFetchError, so an operator can read
exactly which providers were tried and how each one failed.

Example rendered trace:

    yt-mp3: couldn't fetch link for dQw4w9WgXcQ, trying local extraction
    local-extraction: no stream url for dQw4w9WgXcQ
    saavn: SaavnError: no songs found
    youtube-music: YouTubeError: No results found for search query: ...
"""

import traceback
from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class TraceEntry:
    """One labelled "stage: outcome" record."""

    stage: str
    outcome: str

    def render(self) -> str:
        return f"{self.stage}: {self.outcome}"


@dataclass
class DiagnosticTrace:
    """
    Append-only, ordered list of TraceEntry records.

    The trace is structured for inspection (stages(), for_stage()) and
    renders to a single string for logs and error messages.
    """

    _entries: list[TraceEntry] = field(default_factory=list)

    def add(self, stage: str, outcome: str) -> None:
        """Append a note for a stage."""
        self._entries.append(TraceEntry(stage=stage, outcome=outcome))

    def add_error(self, stage: str, error: BaseException | None) -> None:
        """
        Append the full diagnostic of an error for a stage.

        Args:
            stage: Stage name, e.g. "saavn".
            error: The failure. None is recorded as an unknown error.
        """
        if error is None:
            self.add(stage, "unknown error")
        else:
            self.add(stage, describe_error(error))

    @property
    def entries(self) -> tuple[TraceEntry, ...]:
        return tuple(self._entries)

    def stages(self) -> list[str]:
        """Stage names in the order they were recorded."""
        return [entry.stage for entry in self._entries]

    def for_stage(self, stage: str) -> list[TraceEntry]:
        return [entry for entry in self._entries if entry.stage == stage]

    def render(self) -> str:
        return "\n".join(entry.render() for entry in self._entries)

    def __iter__(self) -> Iterator[TraceEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __str__(self) -> str:
        return self.render()


def describe_error(error: BaseException) -> str:
    """
    Format an error with everything useful for diagnosis.

    Includes the exception type, message, traceback (if the error was
    raised at some point), chained causes, and the 'details' dictionary
    of SpotResolverError subclasses.

    Args:
        error: Any exception, raised or not.

    Returns:
        Multi-line description with trailing whitespace stripped.
    """
    text = "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    ).rstrip()

    details = getattr(error, "details", None)
    if details:
        rendered = ", ".join(f"{key}={value!r}" for key, value in details.items())
        text = f"{text}\n  details: {rendered}"

    return text
