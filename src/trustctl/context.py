"""Execution context — everything an action needs, fixed for one invocation.

The context is built once, before the first lifecycle phase runs, and is
passed explicitly to every phase. It names the operator the invocation acts
on; nothing can change that selection while the command runs.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import httpx

from trustctl.config import Settings
from trustctl.errors import StoreError, UsageError
from trustctl.keys.store import FilesystemKeyStore, KeyStore
from trustctl.store.claim_store import ClaimStore

if TYPE_CHECKING:
    from trustctl.cli.prompts import Prompter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionContext:
    """Immutable per-invocation context.

    Parameters
    ----------
    settings:
        Resolved configuration.
    key_store:
        Private key storage.
    store:
        Claim store of the selected operator, or ``None`` when no operator
        is selected (e.g. before the first operator is created).
    interactive:
        Whether interactive phases run and the user may be prompted.
    prompter:
        Prompting collaborator for interactive flows.
    transport:
        Optional ``httpx`` transport used for remote fetches.
    """

    settings: Settings
    key_store: KeyStore
    store: Optional[ClaimStore] = None
    interactive: bool = False
    prompter: Optional["Prompter"] = None
    transport: Optional[httpx.BaseTransport] = None

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        interactive: bool = False,
        prompter: Optional["Prompter"] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "ActionContext":
        """Create the context for one invocation.

        The operator named in *settings* is selected; when none is named and
        the store root holds exactly one operator, that one is selected.
        """
        key_store = FilesystemKeyStore(settings.keys_root)
        operator = settings.operator
        if not operator:
            operators = ClaimStore.list_operators(settings.store_root)
            if len(operators) == 1:
                operator = operators[0]
        store = ClaimStore(settings.store_root, operator, key_store) if operator else None
        logger.debug("Context: store=%s operator=%s interactive=%s", settings.store_root, operator, interactive)
        return cls(
            settings=settings,
            key_store=key_store,
            store=store,
            interactive=interactive,
            prompter=prompter,
            transport=transport,
        )

    def require_store(self) -> ClaimStore:
        """Return the selected operator's store.

        Raises
        ------
        UsageError
            If no operator is selected.
        StoreError
            If the selected operator does not exist.
        """
        if self.store is None:
            operators = ClaimStore.list_operators(self.settings.store_root)
            if operators:
                raise UsageError(f"select an operator with --operator: {', '.join(operators)}")
            raise UsageError("no operator found - add an operator first")
        if not self.store.exists():
            raise StoreError(f"operator {self.store.operator!r} does not exist in {str(self.store.root)!r}")
        return self.store


__all__ = ["ActionContext"]
