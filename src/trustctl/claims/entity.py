"""Entities — the part of every create/edit action that builds a claim.

An :class:`Entity` collects the name and identity key of the thing being
created (or the stored claim being edited), a list of :class:`Editor`
objects that apply caller supplied parameters, and finally seals the claim
with the parent's key and hands the token to the claim store.
"""
from __future__ import annotations

import copy
import datetime
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional

from trustctl.claims.model import ClaimsBase, ClaimType, claims_class_for
from trustctl.claims.timeparams import TimeParams
from trustctl.claims.token import encode
from trustctl.errors import ClaimTypeError, KeyMismatchError, MissingKeyError, UsageError
from trustctl.keys.nkey import KeyKind, KeyPair
from trustctl.keys.resolver import ResolvedKey, resolve_key
from trustctl.keys.store import KeyStore

if TYPE_CHECKING:
    from trustctl.cli.prompts import Prompter
    from trustctl.store.claim_store import ClaimStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Editors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Editor:
    """Applies parameters to claims of one class.

    Parameters
    ----------
    claims_class:
        The claims class this editor understands. :class:`ClaimsBase`
        accepts every claim.
    fn:
        Mutates the claim in progress.
    """

    claims_class: type[ClaimsBase]
    fn: Callable[[Any], None]

    def apply(self, claims: ClaimsBase) -> None:
        """Run the editor.

        Raises
        ------
        ClaimTypeError
            If *claims* is not an instance of :attr:`claims_class`.
        """
        if not isinstance(claims, self.claims_class):
            expected = getattr(self.claims_class, "claim_type", None)
            raise ClaimTypeError(
                expected.value if expected is not None else self.claims_class.__name__,
                claims.claim_type.value,
            )
        self.fn(claims)


def time_editor(params: TimeParams) -> Editor:
    """Editor setting the validity window from *params* (any claim type)."""

    def _edit(claims: ClaimsBase) -> None:
        if params.is_start_changed():
            claims.not_before = params.start_date()
        if params.is_expiry_changed():
            claims.expires = params.expiry_date()

    return Editor(ClaimsBase, _edit)


def check_window(claims: ClaimsBase) -> None:
    """Raise :class:`UsageError` if the claim's window is empty."""
    if claims.not_before and claims.expires and claims.expires <= claims.not_before:
        raise UsageError(f"{claims.claim_type.value} {claims.name!r} would expire before it becomes valid")


def _name_validator(value: str) -> None:
    if not value.strip():
        raise UsageError("name cannot be empty")


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


@dataclass
class Entity:
    """The entity a create or edit action works on.

    Parameters
    ----------
    claim_type:
        Type of the entity.
    name:
        Entity name.
    key_spec:
        Identity key specification from the user (creation only); see
        :mod:`trustctl.keys.resolver`.
    create:
        ``True`` for a new entity, ``False`` when editing a stored one.
    editors:
        Applied in order to the claim in progress.
    """

    claim_type: ClaimType
    name: str = ""
    key_spec: Optional[str] = None
    create: bool = False
    editors: list[Editor] = field(default_factory=list)
    resolved: Optional[ResolvedKey] = None
    key_path: Optional[Path] = None

    @property
    def kind(self) -> KeyKind:
        return self.claim_type.kind

    @property
    def label(self) -> str:
        return self.claim_type.value

    @property
    def generated(self) -> bool:
        return self.resolved is not None and self.resolved.generated

    @property
    def key_pair(self) -> KeyPair | None:
        return self.resolved.key_pair if self.resolved is not None else None

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def edit(self, prompter: "Prompter") -> None:
        """Prompt for the name and, for a new entity, its identity key."""
        self.name = prompter.prompt(f"{self.label} name", default=self.name or None, validator=_name_validator)
        if self.create and self.resolved is None:
            self.resolve(interactive=True, prompter=prompter)

    def resolve(self, interactive: bool = False, prompter: "Prompter | None" = None) -> ResolvedKey:
        """Resolve the identity key once; later calls return the same key."""
        if self.resolved is None:
            self.resolved = resolve_key(
                self.key_spec,
                self.kind,
                interactive=interactive,
                prompter=prompter,
                label=self.label,
            )
        return self.resolved

    def valid(self) -> None:
        """Check the parameters common to every entity.

        Raises
        ------
        UsageError
            If the name is missing.
        """
        if not self.name:
            raise UsageError(f"{self.label} name is required")

    def store_keys(self, key_store: KeyStore, *scope: str) -> Path | None:
        """Persist the identity seed, if one is known; returns its path."""
        kp = self.key_pair
        if kp is None or not kp.has_private:
            return None
        self.key_path = key_store.store(self.name, kp, *scope)
        return self.key_path

    # ------------------------------------------------------------------
    # Sealing
    # ------------------------------------------------------------------

    def seal_claim(
        self,
        signer: KeyPair,
        previous: ClaimsBase | None = None,
        expected_issuer: str | None = None,
    ) -> str:
        """Build, edit and sign the claim; returns the token text.

        For a creation the subject is the resolved identity key. For an edit
        the claim is copied from *previous*, keeping its subject. The issue
        time is always moved past the previous version's.

        Parameters
        ----------
        signer:
            Key of the parent entity (or the operator's own key).
        previous:
            The stored claim being replaced, for edits.
        expected_issuer:
            Public key the signer must have, normally the parent's subject.

        Raises
        ------
        MissingKeyError
            If the signer has no private key, or a new entity has no key.
        KeyMismatchError
            If the signer is not *expected_issuer* or of the wrong kind.
        UsageError
            If the edited validity window is empty.
        """
        if not signer.has_private:
            raise MissingKeyError(f"the private key of {signer.public_key} is required to sign {self.label} {self.name!r}")
        if expected_issuer is not None and signer.public_key != expected_issuer:
            parent = self.claim_type.parent or self.claim_type
            raise KeyMismatchError(parent.value, detail=f"key {signer.public_key} is not the {parent.value} signing key")

        if previous is None:
            kp = self.key_pair
            if kp is None:
                raise MissingKeyError(f"{self.label} {self.name!r} has no identity key")
            claims = claims_class_for(self.claim_type)(subject=kp.public_key, name=self.name)
        else:
            claims = copy.deepcopy(previous)
            claims.token = ""
            claims.claim_id = ""

        for editor in self.editors:
            editor.apply(claims)
        check_window(claims)

        now = int(datetime.datetime.now(datetime.timezone.utc).timestamp())
        claims.issued_at = max(now, previous.issued_at + 1) if previous is not None else now
        claims.issuer = signer.public_key
        return encode(claims, signer)

    def generate_claim(
        self,
        signer: KeyPair,
        store: "ClaimStore",
        previous: ClaimsBase | None = None,
        expected_issuer: str | None = None,
    ) -> str:
        """Seal the claim and persist it in *store*; returns the token text."""
        token = self.seal_claim(signer, previous=previous, expected_issuer=expected_issuer)
        store.write_raw(token)
        logger.info("%s %s %r", "Created" if self.create else "Updated", self.label, self.name)
        return token


__all__ = ["Editor", "Entity", "check_window", "time_editor"]
