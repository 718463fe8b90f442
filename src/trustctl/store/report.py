"""Reports — ordered ok/warning/error entries returned by actions.

A report never raises on its own: a multi-step action records every outcome
and the caller decides what a non-zero error count means.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class Status(str, Enum):
    OK = "ok"
    WARN = "warning"
    ERR = "error"


@dataclass(frozen=True)
class ReportEntry:
    """A single report line.

    Parameters
    ----------
    status:
        Outcome of the step.
    message:
        Human-readable description naming the entity involved.
    error:
        The exception behind an error entry, when there is one.
    """

    status: Status
    message: str
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.status is not Status.ERR


@dataclass
class Report:
    """An ordered collection of :class:`ReportEntry` objects.

    Parameters
    ----------
    label:
        Optional heading describing what the report is about.
    """

    label: str = ""
    entries: list[ReportEntry] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def add_ok(self, message: str, *args: object) -> ReportEntry:
        return self._add(Status.OK, message % args if args else message)

    def add_warning(self, message: str, *args: object) -> ReportEntry:
        return self._add(Status.WARN, message % args if args else message)

    def add_error(self, message: str, *args: object, error: BaseException | None = None) -> ReportEntry:
        return self._add(Status.ERR, message % args if args else message, error)

    def add_from_error(self, error: BaseException) -> ReportEntry:
        """Record *error* using its message."""
        return self._add(Status.ERR, str(error), error)

    def _add(self, status: Status, message: str, error: BaseException | None = None) -> ReportEntry:
        entry = ReportEntry(status=status, message=message, error=error)
        self.entries.append(entry)
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def error_count(self) -> int:
        return sum(1 for e in self.entries if e.status is Status.ERR)

    def ok_count(self) -> int:
        return sum(1 for e in self.entries if e.status is Status.OK)

    def has_errors(self) -> bool:
        """Return True if any step failed."""
        return self.error_count() > 0

    def errors(self) -> list[ReportEntry]:
        return [e for e in self.entries if e.status is Status.ERR]

    def __iter__(self) -> Iterator[ReportEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


__all__ = ["Report", "ReportEntry", "Status"]
