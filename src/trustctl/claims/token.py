"""Claim tokens — Ed25519 signed, JWT-shaped claim encoding.

Token format
------------
The token is a dot-separated string::

    base64url(header).base64url(payload).base64url(signature)

- header: ``{"alg":"ed25519","typ":"jwt"}``
- payload: the claim fields (see :meth:`ClaimsBase.to_payload`) plus a
  ``jti`` content hash computed over the payload without ``jti``
- signature: Ed25519 over ``header.payload`` by the issuer's key

Base64url segments are unpadded. The issuer field carries the signer's
public key, so a token can be verified without any other input.

Decoding happens in two steps. :func:`decode_generic` verifies the signature
and exposes the declared type without committing to a shape, which is enough
to route a token (e.g. to its place in the store). :func:`decode` then builds
the matching claims class and checks that the keys fit the type.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, cast

from trustctl.armor import extract_token
from trustctl.claims.model import ClaimsBase, ClaimType, Claims, claims_class_for
from trustctl.errors import DecodeError, KeyMismatchError, MissingKeyError
from trustctl.keys.nkey import KeyPair, decode_public_key, verify_signature

_TOKEN_HEADER: dict[str, str] = {"alg": "ed25519", "typ": "jwt"}


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _canonical_json(value: dict[str, Any]) -> bytes:
    return json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _claim_id(payload: dict[str, Any]) -> str:
    """Content hash of *payload* (which must not contain ``jti``)."""
    digest = hashlib.sha256(_canonical_json(payload)).digest()
    return base64.b32encode(digest).decode("ascii").rstrip("=")


_HEADER_B64: str = _b64encode(_canonical_json(_TOKEN_HEADER))


# ---------------------------------------------------------------------------
# Generic decoding
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GenericClaims:
    """A verified token whose declared type has not been interpreted yet.

    Parameters
    ----------
    claim_type:
        The declared ``type`` string, which may name a type this version of
        the tool does not know.
    subject, issuer, name, issued_at:
        Common claim fields.
    payload:
        The complete decoded payload.
    token:
        The exact token text.
    """

    claim_type: str
    subject: str
    issuer: str
    name: str
    issued_at: int
    payload: dict[str, Any] = field(repr=False)
    token: str = field(repr=False)


def decode_generic(token: str) -> GenericClaims:
    """Verify *token* and return its common fields.

    Raises
    ------
    DecodeError
        If the token is malformed or its signature does not verify.
    """
    token = token.strip()
    parts = token.split(".")
    if len(parts) != 3:
        raise DecodeError(f"expected 3 dot-separated parts, got {len(parts)}")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64decode(header_b64))
        payload = json.loads(_b64decode(payload_b64))
        signature = _b64decode(signature_b64)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"could not decode token: {exc}") from exc
    if not isinstance(header, dict) or not isinstance(payload, dict):
        raise DecodeError("token header and payload must be JSON objects")
    if header.get("alg") != _TOKEN_HEADER["alg"]:
        raise DecodeError(f"unsupported token algorithm {header.get('alg')!r}")

    issuer = str(payload.get("iss", ""))
    if not issuer:
        raise DecodeError("token has no issuer")
    decode_public_key(issuer)
    if not verify_signature(issuer, f"{header_b64}.{payload_b64}".encode("ascii"), signature):
        raise DecodeError("token signature verification failed")

    try:
        issued_at = int(payload.get("iat") or 0)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"invalid 'iat' field: {exc}") from exc

    return GenericClaims(
        claim_type=str(payload.get("type", "")),
        subject=str(payload.get("sub", "")),
        issuer=issuer,
        name=str(payload.get("name", "")),
        issued_at=issued_at,
        payload=payload,
        token=token,
    )


def claim_type_of(generic: GenericClaims) -> ClaimType:
    """Return the :class:`ClaimType` declared by *generic*.

    Raises
    ------
    DecodeError
        If the declared type is not one this tool understands.
    """
    try:
        return ClaimType(generic.claim_type)
    except ValueError:
        raise DecodeError(f"unsupported token type: {generic.claim_type!r}") from None


# ---------------------------------------------------------------------------
# Typed decoding
# ---------------------------------------------------------------------------


def decode(token: str) -> Claims:
    """Verify *token* and return the claims object for its declared type.

    Raises
    ------
    DecodeError
        If the token is malformed, unsigned, of an unknown type, or its
        subject or issuer key is of the wrong kind for the type.
    """
    generic = decode_generic(token)
    claim_type = claim_type_of(generic)
    claims = claims_class_for(claim_type).from_payload(generic.payload, token=generic.token)
    try:
        check_keys(claims)
    except KeyMismatchError as exc:
        raise DecodeError(f"{claim_type.value} token {generic.name!r}: {exc}") from exc
    return cast(Claims, claims)


def check_keys(claims: ClaimsBase, issuer: str | None = None) -> None:
    """Check that subject and issuer keys fit the claim type.

    Raises
    ------
    KeyMismatchError
        If the subject is not of the claim's kind, or the issuer is neither
        of the parent kind nor (for an operator) the subject itself.
    """
    claim_type = claims.claim_type
    subject_kind, _ = decode_public_key(claims.subject)
    if subject_kind is not claim_type.kind:
        raise KeyMismatchError(claim_type.value, subject_kind.label, "subject")

    issuer = issuer if issuer is not None else claims.issuer
    issuer_kind, _ = decode_public_key(issuer)
    parent = claim_type.parent
    if parent is None:
        if issuer != claims.subject:
            raise KeyMismatchError(claim_type.value, issuer_kind.label, "operator must be self-signed")
    elif issuer_kind is not parent.kind:
        raise KeyMismatchError(parent.value, issuer_kind.label, "issuer")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode(claims: ClaimsBase, signer: KeyPair) -> str:
    """Sign *claims* with *signer* and return the token text.

    The issuer written to the token is always the signer's public key; the
    ``jti`` is recomputed. *claims* itself is not modified.

    Raises
    ------
    MissingKeyError
        If *signer* has no private key.
    KeyMismatchError
        If the subject or signer key does not fit the claim type.
    """
    if not signer.has_private:
        raise MissingKeyError(
            f"{signer.kind.label} key {signer.public_key} has no private key - unable to sign"
        )
    check_keys(claims, issuer=signer.public_key)

    payload = claims.to_payload()
    payload["iss"] = signer.public_key
    payload.pop("jti", None)
    payload["jti"] = _claim_id(payload)

    signing_input = f"{_HEADER_B64}.{_b64encode(_canonical_json(payload))}"
    signature = signer.sign(signing_input.encode("ascii"))
    return f"{signing_input}.{_b64encode(signature)}"


def parse_decorated(data: bytes | str) -> str:
    """Return the bare token from raw or armored token text.

    Raises
    ------
    DecodeError
        If *data* is empty.
    """
    token = extract_token(data)
    if not token:
        raise DecodeError("no data")
    return token


__all__ = [
    "GenericClaims",
    "check_keys",
    "claim_type_of",
    "decode",
    "decode_generic",
    "encode",
    "parse_decorated",
]
