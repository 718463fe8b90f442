"""Actions that create and edit entities.

Each class implements the full lifecycle of :class:`~trustctl.actions.lifecycle.Action`.
Creation actions share :class:`AddEntityAction`; they differ in the claim
type they produce, their parent, and the kind-specific attributes they
accept.

Example
-------
::

    from trustctl.actions.entities import AddAccountAction
    from trustctl.actions.lifecycle import run_action

    action = AddAccountAction(name="billing", key="generate")
    report = run_action(ctx, action)
"""
from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, ClassVar, Sequence

import httpx

from trustctl.actions.lifecycle import Action
from trustctl.claims.entity import Editor, Entity, check_window, time_editor
from trustctl.claims.model import (
    AccountClaims,
    ClaimsBase,
    ClaimType,
    ClusterClaims,
    OperatorClaims,
    ServerClaims,
    UserClaims,
)
from trustctl.claims.timeparams import TimeParams
from trustctl.errors import KeyMismatchError, MissingKeyError, UsageError
from trustctl.keys.nkey import KeyKind, KeyPair, is_public_key, key_kind
from trustctl.keys.resolver import key_validator, resolve_key
from trustctl.store.claim_store import ClaimStore
from trustctl.store.report import Report

if TYPE_CHECKING:
    from trustctl.context import ActionContext

logger = logging.getLogger(__name__)


def check_url(url: str, what: str = "url") -> str:
    """Return *url* if it is an absolute http(s) URL, else raise UsageError."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise UsageError(f"{what} {url!r} is not valid: {exc}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise UsageError(f"{what} {url!r} must be an http or https URL")
    return url


def _preset_window(params: TimeParams, claims: ClaimsBase) -> None:
    """Offer the stored window as the default answer when editing."""
    if params.start is None and claims.not_before:
        params.start = datetime.datetime.fromtimestamp(claims.not_before, datetime.timezone.utc).isoformat()
    if params.expiry is None and claims.expires:
        params.expiry = datetime.datetime.fromtimestamp(claims.expires, datetime.timezone.utc).isoformat()


def _split_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _tags_editor(tags: Sequence[str]) -> Editor:
    def _edit(claims: ClaimsBase) -> None:
        claims.tags = sorted(set(claims.tags) | {t.lower() for t in tags})

    return Editor(ClaimsBase, _edit)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class AddEntityAction(Action):
    """Create an entity signed by its parent.

    Parameters
    ----------
    name:
        Name of the new entity.
    key:
        Identity key specification (seed, public key, path, ``generate``).
    time_params:
        Validity window.
    signer_key:
        Key specification of the parent's key. When absent the parent's key
        is looked up in the key store.
    parent:
        Name of the account (users) or cluster (servers) to create under.
    tags:
        Labels to attach.
    """

    claim_type: ClassVar[ClaimType]

    def __init__(
        self,
        name: str | None = None,
        key: str | None = None,
        time_params: TimeParams | None = None,
        signer_key: str | None = None,
        parent: str | None = None,
        tags: Sequence[str] = (),
    ) -> None:
        self.entity = Entity(self.claim_type, name=name or "", key_spec=key)
        self.time_params = time_params or TimeParams()
        self.signer_key = signer_key
        self.parent = parent or ""
        self.tags = list(tags)
        self.signer: KeyPair | None = None
        self.parent_claims: ClaimsBase | None = None

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    @property
    def parent_type(self) -> ClaimType:
        parent = self.claim_type.parent
        assert parent is not None
        return parent

    def needs_parent_name(self) -> bool:
        return self.parent_type is not ClaimType.OPERATOR

    def attribute_editors(self) -> list[Editor]:
        return []

    def edit_attributes(self, ctx: "ActionContext") -> None:
        """Prompt for kind-specific attributes."""

    def validate_attributes(self, ctx: "ActionContext") -> None:
        """Check kind-specific attributes."""

    def scope(self, store: ClaimStore) -> tuple[str, ...]:
        if self.needs_parent_name():
            return (store.operator, self.parent)
        return (store.operator,)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def set_defaults(self, ctx: "ActionContext") -> None:
        self.entity.create = True
        self.entity.editors = [time_editor(self.time_params), *self.attribute_editors()]
        if self.tags:
            self.entity.editors.append(_tags_editor(self.tags))

    def pre_interactive(self, ctx: "ActionContext") -> None:
        store = ctx.require_store()
        assert ctx.prompter is not None
        if self.needs_parent_name() and not self.parent:
            choices = store.list(self.parent_type)
            if not choices:
                raise UsageError(f"no {self.parent_type.value}s defined - add one first")
            self.parent = ctx.prompter.select(f"select {self.parent_type.value}", choices, default=choices[0])
        self.entity.edit(ctx.prompter)
        self.time_params.edit(ctx.prompter)
        self.edit_attributes(ctx)

        if self.signer_key:
            self.signer = resolve_key(self.signer_key, self.parent_type.kind).key_pair
        else:
            self.signer = self._stored_signer(store)
        if self.signer is None:
            kind = self.parent_type.kind
            path = ctx.prompter.prompt(f"path to the {self.parent_type.value} signing key", validator=key_validator(kind))
            self.signer = resolve_key(path, kind).key_pair

    def load(self, ctx: "ActionContext") -> None:
        store = ctx.require_store()
        if self.needs_parent_name():
            if not self.parent:
                raise UsageError(f"{self.parent_type.value} name is required to add a {self.claim_type.value}")
            if not store.has(self.parent_type, self.parent):
                raise UsageError(f"{self.parent_type.value} {self.parent!r} does not exist")
            self.parent_claims = store.read(self.parent_type, self.parent)
        else:
            self.parent_claims = store.read_operator()
        if self.signer is None:
            if self.signer_key:
                self.signer = resolve_key(self.signer_key, self.parent_type.kind).key_pair
            else:
                self.signer = self._stored_signer(store)

    def post_interactive(self, ctx: "ActionContext") -> None:
        pass

    def validate(self, ctx: "ActionContext") -> None:
        store = ctx.require_store()
        self.entity.valid()
        self.time_params.validate()
        self.validate_attributes(ctx)
        if store.has(self.claim_type, self.entity.name, self.parent):
            where = f" in {self.parent_type.value} {self.parent!r}" if self.needs_parent_name() else ""
            raise UsageError(f"the {self.claim_type.value} {self.entity.name!r} already exists{where}")

        self.entity.resolve(interactive=False)

        assert self.parent_claims is not None
        if self.signer is None:
            raise MissingKeyError(
                f"the private key of {self.parent_type.value} {self.parent_claims.name!r} is required - "
                "store it in the key store or pass it explicitly"
            )
        if self.signer.public_key != self.parent_claims.subject:
            raise KeyMismatchError(
                self.parent_type.value,
                detail=f"key {self.signer.public_key} does not belong to "
                f"{self.parent_type.value} {self.parent_claims.name!r}",
            )

    def run(self, ctx: "ActionContext") -> Report:
        store = ctx.require_store()
        assert self.signer is not None and self.parent_claims is not None
        report = Report(label=f"add {self.claim_type.value}")
        key_path = self.entity.store_keys(ctx.key_store, *self.scope(store))
        self.entity.generate_claim(self.signer, store, expected_issuer=self.parent_claims.subject)
        if self.entity.generated:
            report.add_ok("generated %s key - private key stored %r", self.claim_type.value, str(key_path))
        report.add_ok("added %s %r", self.claim_type.value, self.entity.name)
        return report

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _stored_signer(self, store: ClaimStore) -> KeyPair | None:
        """Look up the parent's private key from the key store."""
        if self.needs_parent_name():
            if not self.parent or not store.has(self.parent_type, self.parent):
                return None
            return store.resolve_signer(self.parent_type, self.parent)
        return store.resolve_signer(ClaimType.OPERATOR, store.operator)


class AddAccountAction(AddEntityAction):
    """Create an account signed by the operator."""

    claim_type = ClaimType.ACCOUNT


class AddUserAction(AddEntityAction):
    """Create a user signed by its account."""

    claim_type = ClaimType.USER

    def __init__(
        self,
        allow_pub: Sequence[str] = (),
        allow_sub: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.allow_pub = list(allow_pub)
        self.allow_sub = list(allow_sub)

    def attribute_editors(self) -> list[Editor]:
        def _edit(claims: UserClaims) -> None:
            if self.allow_pub:
                claims.allow_pub = sorted(set(self.allow_pub))
            if self.allow_sub:
                claims.allow_sub = sorted(set(self.allow_sub))

        return [Editor(UserClaims, _edit)]

    def edit_attributes(self, ctx: "ActionContext") -> None:
        assert ctx.prompter is not None
        pub = ctx.prompter.prompt("publish permissions (comma separated)", default=",".join(self.allow_pub))
        sub = ctx.prompter.prompt("subscribe permissions (comma separated)", default=",".join(self.allow_sub))
        self.allow_pub = _split_list(pub)
        self.allow_sub = _split_list(sub)


class AddClusterAction(AddEntityAction):
    """Create a cluster signed by the operator.

    A cluster trusts the operator that created it unless other operator keys
    are given.
    """

    claim_type = ClaimType.CLUSTER

    def __init__(
        self,
        trust: Sequence[str] = (),
        cluster_urls: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.trust = list(trust)
        self.cluster_urls = list(cluster_urls)

    def attribute_editors(self) -> list[Editor]:
        def _edit(claims: ClusterClaims) -> None:
            trust = self.trust
            if not trust and self.parent_claims is not None:
                trust = [self.parent_claims.subject]
            claims.trust = sorted(set(trust))
            if self.cluster_urls:
                claims.cluster_urls = list(self.cluster_urls)

        return [Editor(ClusterClaims, _edit)]

    def validate_attributes(self, ctx: "ActionContext") -> None:
        for key in self.trust:
            if not is_public_key(key) or key_kind(key) is not KeyKind.OPERATOR:
                raise UsageError(f"trusted key {key!r} is not an operator public key")


class AddServerAction(AddEntityAction):
    """Create a server signed by its cluster."""

    claim_type = ClaimType.SERVER

    def __init__(self, server_urls: Sequence[str] = (), **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.server_urls = list(server_urls)

    def attribute_editors(self) -> list[Editor]:
        def _edit(claims: ServerClaims) -> None:
            if self.server_urls:
                claims.server_urls = list(self.server_urls)

        return [Editor(ServerClaims, _edit)]


class AddOperatorAction(Action):
    """Create a self-signed operator and its store directory.

    Parameters
    ----------
    name:
        Operator name; also the name of its directory under the store root.
    key:
        Identity key specification. The private key is required because the
        operator signs its own claim.
    time_params:
        Validity window.
    account_server_url:
        Base URL remote account tokens are pulled from.
    service_urls:
        Service URLs published in the operator claim.
    """

    def __init__(
        self,
        name: str | None = None,
        key: str | None = None,
        time_params: TimeParams | None = None,
        account_server_url: str | None = None,
        service_urls: Sequence[str] = (),
        tags: Sequence[str] = (),
    ) -> None:
        self.entity = Entity(ClaimType.OPERATOR, name=name or "", key_spec=key)
        self.time_params = time_params or TimeParams()
        self.account_server_url = account_server_url
        self.service_urls = list(service_urls)
        self.tags = list(tags)
        self.store: ClaimStore | None = None

    def _edit(self, claims: OperatorClaims) -> None:
        if self.account_server_url:
            claims.account_server_url = self.account_server_url
        if self.service_urls:
            claims.operator_service_urls = list(self.service_urls)

    def set_defaults(self, ctx: "ActionContext") -> None:
        self.entity.create = True
        self.entity.editors = [time_editor(self.time_params), Editor(OperatorClaims, self._edit)]
        if self.tags:
            self.entity.editors.append(_tags_editor(self.tags))

    def pre_interactive(self, ctx: "ActionContext") -> None:
        assert ctx.prompter is not None
        self.entity.edit(ctx.prompter)
        self.time_params.edit(ctx.prompter)
        url = ctx.prompter.prompt(
            "account server url (empty for none)",
            default=self.account_server_url or "",
            validator=lambda v: check_url(v, "account server url") if v else None,
        )
        self.account_server_url = url or None

    def load(self, ctx: "ActionContext") -> None:
        pass

    def post_interactive(self, ctx: "ActionContext") -> None:
        pass

    def validate(self, ctx: "ActionContext") -> None:
        self.entity.valid()
        self.time_params.validate()
        if self.account_server_url:
            check_url(self.account_server_url, "account server url")
        if self.entity.name in ClaimStore.list_operators(ctx.settings.store_root):
            raise UsageError(f"the operator {self.entity.name!r} already exists")
        resolved = self.entity.resolve(interactive=False)
        if resolved.public_only:
            raise MissingKeyError("the operator's private key is required to self-sign its claim")

    def run(self, ctx: "ActionContext") -> Report:
        kp = self.entity.key_pair
        assert kp is not None
        report = Report(label="add operator")
        key_path = self.entity.store_keys(ctx.key_store)
        token = self.entity.seal_claim(kp, expected_issuer=kp.public_key)
        self.store = ClaimStore.create(ctx.settings.store_root, token, ctx.key_store)
        if self.entity.generated:
            report.add_ok("generated operator key - private key stored %r", str(key_path))
        report.add_ok("added operator %r", self.entity.name)
        return report


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


class EditOperatorAction(Action):
    """Re-issue the selected operator's claim with updated attributes.

    Parameters
    ----------
    time_params:
        Validity window changes.
    account_server_url:
        New account server URL; an empty string removes it.
    service_urls:
        Replacement service URLs.
    tags:
        Labels to add.
    """

    def __init__(
        self,
        time_params: TimeParams | None = None,
        account_server_url: str | None = None,
        service_urls: Sequence[str] | None = None,
        tags: Sequence[str] = (),
    ) -> None:
        self.time_params = time_params or TimeParams()
        self.account_server_url = account_server_url
        self.service_urls = list(service_urls) if service_urls is not None else None
        self.tags = list(tags)
        self.entity = Entity(ClaimType.OPERATOR)
        self.claims: OperatorClaims | None = None
        self.signer: KeyPair | None = None

    def _edit(self, claims: OperatorClaims) -> None:
        if self.account_server_url is not None:
            claims.account_server_url = self.account_server_url
        if self.service_urls is not None:
            claims.operator_service_urls = list(self.service_urls)

    def _changed(self) -> bool:
        return (
            self.time_params.is_start_changed()
            or self.time_params.is_expiry_changed()
            or self.account_server_url is not None
            or self.service_urls is not None
            or bool(self.tags)
        )

    def set_defaults(self, ctx: "ActionContext") -> None:
        self.entity.create = False
        self.entity.editors = [time_editor(self.time_params), Editor(OperatorClaims, self._edit)]
        if self.tags:
            self.entity.editors.append(_tags_editor(self.tags))

    def pre_interactive(self, ctx: "ActionContext") -> None:
        pass

    def load(self, ctx: "ActionContext") -> None:
        store = ctx.require_store()
        self.claims = store.read_operator()
        self.entity.name = self.claims.name
        self.signer = store.resolve_signer(ClaimType.OPERATOR, store.operator)

    def post_interactive(self, ctx: "ActionContext") -> None:
        assert ctx.prompter is not None and self.claims is not None
        _preset_window(self.time_params, self.claims)
        self.time_params.edit(ctx.prompter)
        url = ctx.prompter.prompt(
            "account server url (empty for none)",
            default=self.claims.account_server_url,
            validator=lambda v: check_url(v, "account server url") if v else None,
        )
        self.account_server_url = url

    def validate(self, ctx: "ActionContext") -> None:
        assert self.claims is not None
        if not self._changed():
            raise UsageError("specify an edit option")
        self.time_params.validate()
        if self.account_server_url:
            check_url(self.account_server_url, "account server url")
        if self.signer is None:
            raise MissingKeyError(f"the private key of operator {self.claims.name!r} is not in the key store")
        preview = OperatorClaims(not_before=self.claims.not_before, expires=self.claims.expires, name=self.claims.name)
        time_editor(self.time_params).apply(preview)
        check_window(preview)

    def run(self, ctx: "ActionContext") -> Report:
        store = ctx.require_store()
        assert self.signer is not None and self.claims is not None
        report = Report(label="edit operator")
        self.entity.generate_claim(self.signer, store, previous=self.claims, expected_issuer=self.claims.subject)
        report.add_ok("edited operator %r", self.claims.name)
        return report


class EditAccountAction(Action):
    """Re-issue an account claim with updated attributes.

    Parameters
    ----------
    name:
        Account to edit.
    time_params:
        Validity window changes.
    signer_key:
        Operator key specification; looked up in the key store when absent.
    tags:
        Labels to add.
    """

    def __init__(
        self,
        name: str | None = None,
        time_params: TimeParams | None = None,
        signer_key: str | None = None,
        tags: Sequence[str] = (),
    ) -> None:
        self.entity = Entity(ClaimType.ACCOUNT, name=name or "")
        self.time_params = time_params or TimeParams()
        self.signer_key = signer_key
        self.tags = list(tags)
        self.claims: AccountClaims | None = None
        self.operator: OperatorClaims | None = None
        self.signer: KeyPair | None = None

    def _changed(self) -> bool:
        return self.time_params.is_start_changed() or self.time_params.is_expiry_changed() or bool(self.tags)

    def set_defaults(self, ctx: "ActionContext") -> None:
        self.entity.create = False
        self.entity.editors = [time_editor(self.time_params)]
        if self.tags:
            self.entity.editors.append(_tags_editor(self.tags))

    def pre_interactive(self, ctx: "ActionContext") -> None:
        store = ctx.require_store()
        assert ctx.prompter is not None
        if not self.entity.name:
            choices = store.list(ClaimType.ACCOUNT)
            if not choices:
                raise UsageError("no accounts defined - add one first")
            self.entity.name = ctx.prompter.select("select account", choices, default=choices[0])

    def load(self, ctx: "ActionContext") -> None:
        store = ctx.require_store()
        if not self.entity.name:
            raise UsageError("account name is required")
        self.claims = store.read_account(self.entity.name)
        self.operator = store.read_operator()
        if self.signer_key:
            self.signer = resolve_key(self.signer_key, ClaimType.OPERATOR.kind).key_pair
        else:
            self.signer = store.resolve_signer(ClaimType.OPERATOR, store.operator)

    def post_interactive(self, ctx: "ActionContext") -> None:
        assert ctx.prompter is not None
        assert self.claims is not None
        _preset_window(self.time_params, self.claims)
        self.time_params.edit(ctx.prompter)

    def validate(self, ctx: "ActionContext") -> None:
        assert self.claims is not None and self.operator is not None
        if not self._changed():
            raise UsageError("specify an edit option")
        self.time_params.validate()
        if self.signer is None:
            raise MissingKeyError(f"the private key of operator {self.operator.name!r} is required")
        if self.signer.public_key != self.operator.subject:
            raise KeyMismatchError("operator", detail=f"key {self.signer.public_key} does not belong to operator {self.operator.name!r}")
        preview = AccountClaims(not_before=self.claims.not_before, expires=self.claims.expires, name=self.claims.name)
        time_editor(self.time_params).apply(preview)
        check_window(preview)

    def run(self, ctx: "ActionContext") -> Report:
        store = ctx.require_store()
        assert self.signer is not None and self.claims is not None and self.operator is not None
        report = Report(label="edit account")
        self.entity.generate_claim(self.signer, store, previous=self.claims, expected_issuer=self.operator.subject)
        report.add_ok("edited account %r", self.claims.name)
        return report


__all__ = [
    "AddAccountAction",
    "AddClusterAction",
    "AddEntityAction",
    "AddOperatorAction",
    "AddServerAction",
    "AddUserAction",
    "EditAccountAction",
    "EditOperatorAction",
    "check_url",
]
