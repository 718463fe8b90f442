"""Action lifecycle — the phase protocol every create/edit command runs.

Phases run strictly in this order, each exactly once::

    set_defaults -> [pre_interactive] -> load -> [post_interactive] -> validate -> run

The bracketed phases only run in interactive mode. Every :class:`Action`
implements all six phases; phases an action does not need have empty
bodies. A failing phase stops the sequence, so nothing is mutated unless
every phase before ``run`` succeeded.

Error semantics
---------------
- Failures before ``run`` propagate unchanged. ``validate`` converts
  non-trustctl exceptions to :class:`~trustctl.errors.UsageError`, which the
  command line answers with the command's usage text.
- Failures in ``run`` are runtime errors: trustctl errors propagate
  unchanged, anything else is wrapped in :class:`~trustctl.errors.ActionError`.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from trustctl.errors import ActionError, TrustctlError, UsageError
from trustctl.store.report import Report

if TYPE_CHECKING:
    from trustctl.context import ActionContext

logger = logging.getLogger(__name__)


class Action(ABC):
    """A command that creates, edits or synchronizes entities."""

    @abstractmethod
    def set_defaults(self, ctx: "ActionContext") -> None:
        """Record in-memory defaults. Must not perform I/O."""

    @abstractmethod
    def pre_interactive(self, ctx: "ActionContext") -> None:
        """Prompt for missing parameters and keys (interactive mode only)."""

    @abstractmethod
    def load(self, ctx: "ActionContext") -> None:
        """Load stored state needed by later phases. Must not prompt."""

    @abstractmethod
    def post_interactive(self, ctx: "ActionContext") -> None:
        """Adjust parameters after ``load`` (interactive mode only)."""

    @abstractmethod
    def validate(self, ctx: "ActionContext") -> None:
        """Check parameters; raise :class:`UsageError` for bad input."""

    @abstractmethod
    def run(self, ctx: "ActionContext") -> Report:
        """Perform the mutation and describe the outcome."""


def run_action(ctx: "ActionContext", action: Action) -> Report:
    """Run *action* through every lifecycle phase.

    Parameters
    ----------
    ctx:
        The invocation's context; ``ctx.interactive`` decides whether the
        interactive phases run.
    action:
        The action to execute.

    Returns
    -------
    Report
        What ``run`` reported.

    Raises
    ------
    UsageError
        If validation fails.
    TrustctlError
        If any other phase fails.
    ActionError
        If ``run`` fails with an unexpected exception.
    """
    name = type(action).__name__
    phases: list[tuple[str, Callable[["ActionContext"], None]]] = [("set_defaults", action.set_defaults)]
    if ctx.interactive:
        phases.append(("pre_interactive", action.pre_interactive))
    phases.append(("load", action.load))
    if ctx.interactive:
        phases.append(("post_interactive", action.post_interactive))

    for phase, fn in phases:
        logger.debug("%s: %s", name, phase)
        fn(ctx)

    logger.debug("%s: validate", name)
    try:
        action.validate(ctx)
    except TrustctlError:
        raise
    except Exception as exc:
        raise UsageError(str(exc)) from exc

    logger.debug("%s: run", name)
    try:
        return action.run(ctx)
    except TrustctlError:
        raise
    except Exception as exc:
        raise ActionError("run", exc) from exc


__all__ = ["Action", "run_action"]
