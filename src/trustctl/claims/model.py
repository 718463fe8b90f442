"""Claim data model — one dataclass per entity kind.

A claim binds an entity's public key (its *subject*) to a name, a validity
window, and kind-specific attributes, and is signed by the *issuer*: the
subject of the entity's parent, or the subject itself for the self-signed
operator at the root of the hierarchy::

    Operator ─┬─ Account ── User
              └─ Cluster ── Server

The five claim classes form a closed set keyed by :class:`ClaimType`;
:func:`claims_class_for` maps every type to its class and is the only place
where a type tag is turned into a shape.

Claims under construction are plain mutable dataclasses. Once sealed (see
:mod:`trustctl.claims.token`) a claim is never modified again; an edit deep-copies
it and seals the copy.
"""
from __future__ import annotations

import dataclasses
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from trustctl.errors import DecodeError
from trustctl.keys.nkey import KeyKind


class ClaimType(str, Enum):
    """Declared type of a claim; equal to the kind of its subject key."""

    OPERATOR = "operator"
    ACCOUNT = "account"
    USER = "user"
    CLUSTER = "cluster"
    SERVER = "server"

    @property
    def kind(self) -> KeyKind:
        return KeyKind(self.value)

    @property
    def parent(self) -> "ClaimType | None":
        """The type of the issuing entity (``None`` for the self-signed root)."""
        return PARENT_TYPES[self]


PARENT_TYPES: dict[ClaimType, ClaimType | None] = {
    ClaimType.OPERATOR: None,
    ClaimType.ACCOUNT: ClaimType.OPERATOR,
    ClaimType.USER: ClaimType.ACCOUNT,
    ClaimType.CLUSTER: ClaimType.OPERATOR,
    ClaimType.SERVER: ClaimType.CLUSTER,
}


def _str_list(value: Any, what: str) -> list[str]:
    if not isinstance(value, list):
        raise DecodeError(f"{what} must be a list, got {type(value).__name__}")
    return [str(v) for v in value]


@dataclass
class ClaimsBase:
    """Fields shared by every claim.

    Parameters
    ----------
    subject:
        The entity's own public key (wire name ``sub``).
    issuer:
        Public key of the signer (``iss``).
    name:
        Entity name, unique within the parent scope.
    issued_at:
        Unix seconds when the claim was sealed (``iat``).
    not_before:
        Start of the validity window in unix seconds, 0 when unbounded.
    expires:
        End of the validity window in unix seconds, 0 when unbounded.
    claim_id:
        Content hash of the sealed payload (``jti``).
    tags:
        Free-form labels.
    token:
        The exact signed token text this claim was decoded from, or empty for
        a claim that has not been sealed yet.
    """

    claim_type: ClassVar[ClaimType]

    subject: str = ""
    issuer: str = ""
    name: str = ""
    issued_at: int = 0
    not_before: int = 0
    expires: int = 0
    claim_id: str = ""
    tags: list[str] = field(default_factory=list)
    token: str = field(default="", compare=False, repr=False)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_payload(self) -> dict[str, Any]:
        """Return the wire payload (without signature) as a plain dict."""
        payload: dict[str, Any] = {
            "iat": self.issued_at,
            "iss": self.issuer,
            "name": self.name,
            "sub": self.subject,
            "type": self.claim_type.value,
        }
        if self.claim_id:
            payload["jti"] = self.claim_id
        if self.not_before:
            payload["nbf"] = self.not_before
        if self.expires:
            payload["exp"] = self.expires
        if self.tags:
            payload["tags"] = list(self.tags)
        data = {}
        for f in self.data_fields():
            value = getattr(self, f.name)
            if value:
                data[f.name] = list(value) if isinstance(value, list) else value
        if data:
            payload["data"] = data
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any], token: str = "") -> "ClaimsBase":
        """Build a claim from a decoded wire payload.

        Unknown keys under ``data`` are ignored.

        Raises
        ------
        DecodeError
            If a field has the wrong shape, e.g. a non-numeric ``exp``.
        """
        try:
            kwargs: dict[str, Any] = {
                "subject": str(payload.get("sub", "")),
                "issuer": str(payload.get("iss", "")),
                "name": str(payload.get("name", "")),
                "issued_at": int(payload.get("iat") or 0),
                "not_before": int(payload.get("nbf") or 0),
                "expires": int(payload.get("exp") or 0),
                "claim_id": str(payload.get("jti", "")),
                "tags": _str_list(payload.get("tags") or [], "tags"),
                "token": token,
            }
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"malformed {cls.claim_type.value} claim: {exc}") from exc
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise DecodeError(f"malformed {cls.claim_type.value} claim: data must be an object")
        for f in cls.data_fields():
            if f.name not in data:
                continue
            value = data[f.name]
            if isinstance(f.default, str):
                kwargs[f.name] = str(value)
            else:
                kwargs[f.name] = _str_list(value, f.name)
        return cls(**kwargs)

    @classmethod
    def data_fields(cls) -> list[dataclasses.Field]:
        """Return the kind-specific fields declared by a subclass."""
        base = {f.name for f in dataclasses.fields(ClaimsBase)}
        return [f for f in dataclasses.fields(cls) if f.name not in base]

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    def is_expired(self, now: int | None = None) -> bool:
        if not self.expires:
            return False
        if now is None:
            now = int(datetime.datetime.now(datetime.timezone.utc).timestamp())
        return now >= self.expires

    def is_self_signed(self) -> bool:
        return bool(self.subject) and self.subject == self.issuer


@dataclass
class OperatorClaims(ClaimsBase):
    """Self-signed root of the hierarchy.

    ``account_server_url`` is the base URL of the publishing service that
    remote operator and account tokens are pulled from.
    """

    claim_type: ClassVar[ClaimType] = ClaimType.OPERATOR

    account_server_url: str = ""
    operator_service_urls: list[str] = field(default_factory=list)


@dataclass
class AccountClaims(ClaimsBase):
    """An account, issued by the operator."""

    claim_type: ClassVar[ClaimType] = ClaimType.ACCOUNT


@dataclass
class UserClaims(ClaimsBase):
    """A user, issued by its account."""

    claim_type: ClassVar[ClaimType] = ClaimType.USER

    allow_pub: list[str] = field(default_factory=list)
    allow_sub: list[str] = field(default_factory=list)


@dataclass
class ClusterClaims(ClaimsBase):
    """A cluster, issued by the operator."""

    claim_type: ClassVar[ClaimType] = ClaimType.CLUSTER

    trust: list[str] = field(default_factory=list)
    cluster_urls: list[str] = field(default_factory=list)


@dataclass
class ServerClaims(ClaimsBase):
    """A server, issued by its cluster."""

    claim_type: ClassVar[ClaimType] = ClaimType.SERVER

    server_urls: list[str] = field(default_factory=list)


Claims = Union[OperatorClaims, AccountClaims, UserClaims, ClusterClaims, ServerClaims]

_CLAIM_CLASSES: dict[ClaimType, type[ClaimsBase]] = {
    ClaimType.OPERATOR: OperatorClaims,
    ClaimType.ACCOUNT: AccountClaims,
    ClaimType.USER: UserClaims,
    ClaimType.CLUSTER: ClusterClaims,
    ClaimType.SERVER: ServerClaims,
}

if set(_CLAIM_CLASSES) != set(ClaimType):
    raise RuntimeError("every ClaimType must map to a claims class")


def claims_class_for(claim_type: ClaimType) -> type[ClaimsBase]:
    """Return the claims class for *claim_type*."""
    return _CLAIM_CLASSES[claim_type]


__all__ = [
    "AccountClaims",
    "ClaimType",
    "Claims",
    "ClaimsBase",
    "ClusterClaims",
    "OperatorClaims",
    "PARENT_TYPES",
    "ServerClaims",
    "UserClaims",
    "claims_class_for",
]
