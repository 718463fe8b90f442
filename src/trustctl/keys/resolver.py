"""Key resolution — turns a user supplied key specification into a key pair.

A key specification is one of:

- an encoded seed (``SA...``): resolves to a full key pair;
- an encoded public key (``A...``): resolves to a public-only handle that
  can be referenced in claims but cannot sign;
- the literal ``generate``: a new key pair is created;
- anything else is treated as the path of a file holding a seed or public
  key, either bare or armored (``-----BEGIN ... KEY-----``).

When no specification is given, :func:`resolve_key` asks the user (in
interactive flows only) whether a key should be generated, or for the path to
an existing one. Outside interactive flows an absent key is an error; keys are
never generated silently.

Example
-------
::

    from trustctl.keys.nkey import KeyKind
    from trustctl.keys.resolver import resolve_key

    resolved = resolve_key("generate", KeyKind.ACCOUNT)
    assert resolved.generated
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from trustctl.armor import extract_token
from trustctl.errors import DecodeError, KeyMismatchError, MissingKeyError
from trustctl.keys.nkey import GENERATE, KeyKind, KeyPair, parse_key

if TYPE_CHECKING:
    from trustctl.cli.prompts import Prompter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedKey:
    """Result of resolving a key specification.

    Parameters
    ----------
    key_pair:
        The resolved key. ``key_pair.has_private`` is ``False`` when only a
        public key was supplied.
    generated:
        ``True`` when the key was created during resolution. Callers report
        this to the user together with the location the seed was stored at.
    source:
        Where the key came from: ``"seed"``, ``"public-key"``, ``"file"`` or
        ``"generated"``.
    path:
        The file the key was read from, for ``source == "file"``.
    """

    key_pair: KeyPair
    generated: bool = False
    source: str = "seed"
    path: Optional[Path] = None

    @property
    def public_only(self) -> bool:
        return not self.key_pair.has_private


def load_key(spec: str, kind: KeyKind | None = None) -> ResolvedKey:
    """Resolve *spec* without any prompting.

    Parameters
    ----------
    spec:
        Seed, public key, ``generate``, or path to a key file.
    kind:
        Kind of key to generate when *spec* is ``generate``.

    Raises
    ------
    MissingKeyError
        If *spec* names a file that does not exist, or asks for generation
        without a kind.
    DecodeError
        If the key text is malformed.
    """
    spec = spec.strip()
    if spec == GENERATE:
        if kind is None:
            raise MissingKeyError("cannot generate a key without knowing its kind")
        return ResolvedKey(KeyPair.generate(kind), generated=True, source="generated")

    try:
        kp = parse_key(spec)
    except DecodeError:
        kp = None
    if kp is not None:
        return ResolvedKey(kp, source="seed" if kp.has_private else "public-key")

    path = Path(spec).expanduser()
    if not path.is_file():
        raise MissingKeyError(f"{spec!r} is not a key and no such key file exists")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MissingKeyError(f"error reading key file {str(path)!r}: {exc}") from exc
    kp = parse_key(extract_token(text))
    return ResolvedKey(kp, source="file", path=path)


def check_kind(resolved: ResolvedKey, expected: KeyKind) -> ResolvedKey:
    """Return *resolved* unchanged, or raise if its kind is not *expected*."""
    actual = resolved.key_pair.kind
    if actual is not expected:
        raise KeyMismatchError(expected.label, actual.label)
    return resolved


def key_validator(kind: KeyKind) -> Callable[[str], None]:
    """Return a prompt validator accepting only keys of *kind*."""

    def _validate(value: str) -> None:
        check_kind(load_key(value, kind), kind)

    return _validate


def resolve_key(
    spec: str | None,
    expected: KeyKind,
    *,
    interactive: bool = False,
    prompter: "Prompter | None" = None,
    label: str | None = None,
) -> ResolvedKey:
    """Resolve a key specification and verify it is of the *expected* kind.

    Parameters
    ----------
    spec:
        The key specification, or ``None`` when the user supplied none.
    expected:
        The kind the resolved key must have.
    interactive:
        Whether the user may be prompted.
    prompter:
        Prompting collaborator; required when *interactive* is ``True``.
    label:
        Human readable name used in prompts (defaults to the kind label).

    Returns
    -------
    ResolvedKey

    Raises
    ------
    KeyMismatchError
        If the key is not of the expected kind.
    MissingKeyError
        If *spec* is absent and the flow is not interactive.
    """
    label = label or expected.label
    if spec:
        return check_kind(load_key(spec, expected), expected)

    if not interactive or prompter is None:
        raise MissingKeyError(f"{label} key is required")

    if prompter.confirm(f"generate a new {label} key", default=True):
        resolved = ResolvedKey(KeyPair.generate(expected), generated=True, source="generated")
        logger.debug("Generated %s key %s", label, resolved.key_pair.public_key)
        return resolved

    path = prompter.prompt(f"path to the {label} key", validator=key_validator(expected))
    return check_kind(load_key(path, expected), expected)


__all__ = [
    "ResolvedKey",
    "check_kind",
    "key_validator",
    "load_key",
    "resolve_key",
]
