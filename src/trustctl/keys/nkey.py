"""Kind-tagged Ed25519 identity keys.

Every entity in the trust hierarchy is identified by an Ed25519 key pair.
Keys are exchanged as self-describing text so that the kind of entity a key
belongs to can be read off the key itself.

Encoding
--------
Public key:
    ``base32(prefix || raw_public_key || crc16)`` without padding. The prefix
    byte is chosen so the first character names the kind (``O`` operator,
    ``A`` account, ``U`` user, ``C`` cluster, ``N`` server).
Seed:
    ``base32(seed_prefix_hi || seed_prefix_lo || raw_seed || crc16)``. The two
    prefix bytes carry the seed marker (``S``) and the kind, so a seed reads as
    ``SO...``, ``SA...`` and so on.

The checksum is CRC-16/XMODEM, appended little-endian.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from trustctl.errors import DecodeError

_PREFIX_SEED: int = 18 << 3  # 'S'

# Literal value that asks the resolver for a freshly generated key.
GENERATE: str = "generate"


class KeyKind(str, Enum):
    """The kind of entity an identity key belongs to."""

    OPERATOR = "operator"
    ACCOUNT = "account"
    USER = "user"
    CLUSTER = "cluster"
    SERVER = "server"

    @property
    def prefix(self) -> int:
        """Prefix byte used when encoding keys of this kind."""
        return _PREFIXES[self]

    @property
    def label(self) -> str:
        return self.value


_PREFIXES: dict[KeyKind, int] = {
    KeyKind.OPERATOR: 14 << 3,  # 'O'
    KeyKind.ACCOUNT: 0,  # 'A'
    KeyKind.USER: 20 << 3,  # 'U'
    KeyKind.CLUSTER: 2 << 3,  # 'C'
    KeyKind.SERVER: 13 << 3,  # 'N'
}
_KINDS_BY_PREFIX: dict[int, KeyKind] = {v: k for k, v in _PREFIXES.items()}


# ---------------------------------------------------------------------------
# Codec helpers
# ---------------------------------------------------------------------------


def _crc16(data: bytes) -> int:
    """Compute the CRC-16/XMODEM checksum of *data*."""
    crc = 0
    for byte in data:
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


def _encode(prefix: bytes, payload: bytes) -> str:
    raw = prefix + payload
    raw += _crc16(raw).to_bytes(2, "little")
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def _decode(encoded: str) -> bytes:
    """Decode base32 text and verify its checksum; returns prefix + payload."""
    text = encoded.strip()
    if not text:
        raise DecodeError("empty key")
    try:
        raw = base64.b32decode(text + "=" * (-len(text) % 8))
    except (ValueError, TypeError) as exc:
        raise DecodeError(f"invalid key encoding: {exc}") from exc
    if len(raw) < 4:
        raise DecodeError("invalid key length")
    body, checksum = raw[:-2], raw[-2:]
    if _crc16(body) != int.from_bytes(checksum, "little"):
        raise DecodeError("invalid key checksum")
    return body


def decode_public_key(encoded: str) -> tuple[KeyKind, bytes]:
    """Return the kind and the 32 raw bytes of an encoded public key.

    Raises
    ------
    DecodeError
        If *encoded* is not a well-formed public key.
    """
    body = _decode(encoded)
    kind = _KINDS_BY_PREFIX.get(body[0])
    if kind is None or len(body) != 33:
        raise DecodeError(f"{encoded[:8]}... is not a valid public key")
    return kind, body[1:]


def decode_seed(encoded: str) -> tuple[KeyKind, bytes]:
    """Return the kind and the 32 raw bytes of an encoded seed.

    Raises
    ------
    DecodeError
        If *encoded* is not a well-formed seed.
    """
    body = _decode(encoded)
    if len(body) != 34 or (body[0] & 0xF8) != _PREFIX_SEED:
        raise DecodeError("not a valid seed")
    prefix = ((body[0] & 0x07) << 5) | ((body[1] & 0xF8) >> 3)
    kind = _KINDS_BY_PREFIX.get(prefix)
    if kind is None:
        raise DecodeError("seed has an unknown key kind")
    return kind, body[2:]


def encode_public_key(kind: KeyKind, raw: bytes) -> str:
    return _encode(bytes([kind.prefix]), raw)


def encode_seed(kind: KeyKind, raw: bytes) -> str:
    hi = _PREFIX_SEED | (kind.prefix >> 5)
    lo = (kind.prefix & 0x1F) << 3
    return _encode(bytes([hi, lo]), raw)


def is_public_key(value: str) -> bool:
    """Return True if *value* decodes as a public key of any kind."""
    try:
        decode_public_key(value)
    except DecodeError:
        return False
    return True


def is_seed(value: str) -> bool:
    """Return True if *value* decodes as a seed of any kind."""
    try:
        decode_seed(value)
    except DecodeError:
        return False
    return True


def key_kind(value: str) -> KeyKind:
    """Return the kind of a public key or seed string."""
    if value.startswith("S"):
        return decode_seed(value)[0]
    return decode_public_key(value)[0]


# ---------------------------------------------------------------------------
# KeyPair
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyPair:
    """An identity key pair, or a public-only handle.

    Parameters
    ----------
    kind:
        The entity kind the key identifies.
    public_key:
        Encoded public key. This is the entity's permanent identifier.
    seed:
        Encoded seed, or ``None`` when only the public key is known. A
        public-only pair can be referenced in claims but cannot sign.
    """

    kind: KeyKind
    public_key: str
    seed: str | None = None

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls, kind: KeyKind) -> "KeyPair":
        """Create a new random key pair of the given kind."""
        private_key = Ed25519PrivateKey.generate()
        raw_seed = private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        raw_public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return cls(
            kind=kind,
            public_key=encode_public_key(kind, raw_public),
            seed=encode_seed(kind, raw_seed),
        )

    @classmethod
    def from_seed(cls, seed: str) -> "KeyPair":
        """Rebuild a full key pair from its encoded seed."""
        seed = seed.strip()
        kind, raw_seed = decode_seed(seed)
        private_key = Ed25519PrivateKey.from_private_bytes(raw_seed)
        raw_public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return cls(kind=kind, public_key=encode_public_key(kind, raw_public), seed=seed)

    @classmethod
    def from_public_key(cls, public_key: str) -> "KeyPair":
        """Build a public-only handle from an encoded public key."""
        public_key = public_key.strip()
        kind, _ = decode_public_key(public_key)
        return cls(kind=kind, public_key=public_key)

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    @property
    def has_private(self) -> bool:
        return self.seed is not None

    def sign(self, data: bytes) -> bytes:
        """Sign *data*; returns the 64-byte Ed25519 signature.

        Raises
        ------
        ValueError
            If this is a public-only handle.
        """
        if self.seed is None:
            raise ValueError(f"{self.kind.label} key {self.public_key} has no private key")
        _, raw_seed = decode_seed(self.seed)
        return Ed25519PrivateKey.from_private_bytes(raw_seed).sign(data)

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Return True if *signature* over *data* was made by this key."""
        return verify_signature(self.public_key, data, signature)

    def public_only(self) -> "KeyPair":
        """Return a copy of this pair without the seed."""
        return KeyPair(kind=self.kind, public_key=self.public_key)

    def __repr__(self) -> str:
        # Seeds are secrets; keep them out of logs and tracebacks.
        return f"KeyPair(kind={self.kind.value!r}, public_key={self.public_key!r})"


def verify_signature(public_key: str, data: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 *signature* over *data* against an encoded public key."""
    _, raw_public = decode_public_key(public_key)
    try:
        Ed25519PublicKey.from_public_bytes(raw_public).verify(signature, data)
    except InvalidSignature:
        return False
    return True


def parse_key(value: str) -> KeyPair:
    """Parse a seed or public key string into a :class:`KeyPair`.

    Raises
    ------
    DecodeError
        If *value* is neither a seed nor a public key.
    """
    value = value.strip()
    if value.startswith("S"):
        return KeyPair.from_seed(value)
    return KeyPair.from_public_key(value)


__all__ = [
    "GENERATE",
    "KeyKind",
    "KeyPair",
    "decode_public_key",
    "decode_seed",
    "encode_public_key",
    "encode_seed",
    "is_public_key",
    "is_seed",
    "key_kind",
    "parse_key",
    "verify_signature",
]
