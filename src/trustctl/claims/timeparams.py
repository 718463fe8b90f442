"""Validity window parameters shared by entity creating and editing actions.

Both ends of the window accept:

- ``0``: unset, the claim carries no bound;
- an absolute date ``YYYY-MM-DD`` (midnight UTC) or ISO 8601 datetime;
- a relative offset from now: ``<n>`` followed by ``h`` (hours), ``d``
  (days), ``w`` (weeks), ``M`` (months of 30 days) or ``y`` (years of 365
  days), e.g. ``3d`` or ``1y``.
"""
from __future__ import annotations

import datetime
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from trustctl.errors import UsageError

if TYPE_CHECKING:
    from trustctl.cli.prompts import Prompter

_RELATIVE = re.compile(r"^(\d+)([hdwMy])$")
_UNITS: dict[str, datetime.timedelta] = {
    "h": datetime.timedelta(hours=1),
    "d": datetime.timedelta(days=1),
    "w": datetime.timedelta(weeks=1),
    "M": datetime.timedelta(days=30),
    "y": datetime.timedelta(days=365),
}


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def parse_time(value: str, now: datetime.datetime | None = None) -> int:
    """Convert a window specification to unix seconds (0 means unset).

    Raises
    ------
    UsageError
        If *value* is not a recognized specification.
    """
    value = value.strip()
    if value in ("", "0"):
        return 0
    now = now or _utcnow()

    m = _RELATIVE.match(value)
    if m:
        return int((now + int(m.group(1)) * _UNITS[m.group(2)]).timestamp())

    try:
        when = datetime.datetime.fromisoformat(value)
    except ValueError:
        raise UsageError(
            f"{value!r} is not a valid date - use YYYY-MM-DD, an offset such as 3d, or 0"
        ) from None
    if when.tzinfo is None:
        when = when.replace(tzinfo=datetime.timezone.utc)
    return int(when.timestamp())


@dataclass
class TimeParams:
    """Start and expiry of a claim's validity window.

    Parameters
    ----------
    start:
        Specification for ``not_before``, or ``None`` to leave it unchanged.
    expiry:
        Specification for ``expires``, or ``None`` to leave it unchanged.
    """

    start: Optional[str] = None
    expiry: Optional[str] = None

    def is_start_changed(self) -> bool:
        return self.start is not None

    def is_expiry_changed(self) -> bool:
        return self.expiry is not None

    def start_date(self, now: datetime.datetime | None = None) -> int:
        return parse_time(self.start or "0", now)

    def expiry_date(self, now: datetime.datetime | None = None) -> int:
        return parse_time(self.expiry or "0", now)

    def edit(self, prompter: "Prompter") -> None:
        """Prompt for both ends of the window (interactive flows)."""

        def _check(value: str) -> None:
            parse_time(value)

        self.start = prompter.prompt(
            "valid from ('0' is always, YYYY-MM-DD or #d)", default=self.start or "0", validator=_check
        )
        self.expiry = prompter.prompt(
            "valid until ('0' is always, YYYY-MM-DD or #d)", default=self.expiry or "0", validator=_check
        )

    def validate(self, now: datetime.datetime | None = None) -> None:
        """Check that both ends parse and that the window is not empty.

        Raises
        ------
        UsageError
            If a value cannot be parsed or expiry is not after start.
        """
        now = now or _utcnow()
        start = self.start_date(now)
        expiry = self.expiry_date(now)
        if start and expiry and expiry <= start:
            raise UsageError(
                f"expiry date {datetime.datetime.fromtimestamp(expiry, datetime.timezone.utc):%Y-%m-%d %H:%M:%S} "
                "must be after the start date"
            )


__all__ = ["TimeParams", "parse_time"]
