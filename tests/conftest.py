"""Shared fixtures: settings rooted in tmp_path, a scripted prompter, and a
populated operator store."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

from trustctl.actions import AddAccountAction, AddOperatorAction, run_action
from trustctl.config import Settings
from trustctl.context import ActionContext
from trustctl.store.claim_store import ClaimStore

ACCOUNT_SERVER_URL = "http://accounts.example.com/jwt/v1"


class ScriptedPrompter:
    """Answers prompts from pre-recorded queues, falling back to defaults."""

    def __init__(
        self,
        answers: Sequence[str] = (),
        confirms: Sequence[bool] = (),
        selections: Sequence[str] = (),
    ) -> None:
        self.answers = list(answers)
        self.confirms = list(confirms)
        self.selections = list(selections)
        self.asked: list[str] = []

    def confirm(self, question: str, default: bool = False) -> bool:
        self.asked.append(question)
        return self.confirms.pop(0) if self.confirms else default

    def prompt(
        self,
        label: str,
        default: Optional[str] = None,
        validator: Optional[Callable[[str], None]] = None,
    ) -> str:
        self.asked.append(label)
        value = self.answers.pop(0) if self.answers else (default or "")
        if validator is not None:
            validator(value)
        return value

    def select(self, label: str, choices: Sequence[str], default: Optional[str] = None) -> str:
        self.asked.append(label)
        value = self.selections.pop(0) if self.selections else (default or choices[0])
        assert value in choices
        return value


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(store_root=tmp_path / "store", keys_root=tmp_path / "keys")


@pytest.fixture()
def make_ctx(settings: Settings) -> Callable[..., ActionContext]:
    """Build a fresh context, as every command invocation does."""

    def _make(**kwargs: object) -> ActionContext:
        return ActionContext.build(settings, **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture()
def acme(make_ctx: Callable[..., ActionContext]) -> ClaimStore:
    """Store of operator "acme" with an account server URL."""
    run_action(
        make_ctx(),
        AddOperatorAction(name="acme", key="generate", account_server_url=ACCOUNT_SERVER_URL),
    )
    store = make_ctx().store
    assert store is not None
    return store


@pytest.fixture()
def billing(acme: ClaimStore, make_ctx: Callable[..., ActionContext]) -> ClaimStore:
    """The "acme" store with accounts "billing" and "ops"."""
    for name in ("billing", "ops"):
        run_action(make_ctx(), AddAccountAction(name=name, key="generate"))
    return acme


@pytest.fixture()
def scripted() -> type[ScriptedPrompter]:
    """The ScriptedPrompter class, for tests that drive interactive flows."""
    return ScriptedPrompter
