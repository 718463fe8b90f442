"""Prompting — the interface interactive flows use to ask the user things.

Actions never talk to the terminal directly; they receive a
:class:`Prompter` through the execution context. :class:`ConsolePrompter`
is the terminal implementation built on ``click``.
"""
from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

import click

from trustctl.errors import TrustctlError

Validator = Callable[[str], None]


class Prompter(Protocol):
    """What interactive flows may ask of the user."""

    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask a yes/no question."""
        ...

    def prompt(
        self,
        label: str,
        default: Optional[str] = None,
        validator: Optional[Validator] = None,
    ) -> str:
        """Ask for free text; *validator* raises to reject a value."""
        ...

    def select(self, label: str, choices: Sequence[str], default: Optional[str] = None) -> str:
        """Ask the user to pick one of *choices*."""
        ...


class ConsolePrompter:
    """Prompter reading from the terminal through ``click``.

    Invalid answers are reported and the question is asked again.
    """

    def confirm(self, question: str, default: bool = False) -> bool:
        return click.confirm(question, default=default)

    def prompt(
        self,
        label: str,
        default: Optional[str] = None,
        validator: Optional[Validator] = None,
    ) -> str:
        def _process(value: str) -> str:
            if validator is not None:
                try:
                    validator(value)
                except (TrustctlError, ValueError) as exc:
                    raise click.UsageError(str(exc)) from exc
            return value

        return click.prompt(label, default=default, value_proc=_process)

    def select(self, label: str, choices: Sequence[str], default: Optional[str] = None) -> str:
        return click.prompt(label, type=click.Choice(list(choices)), default=default)


__all__ = ["ConsolePrompter", "Prompter", "Validator"]
