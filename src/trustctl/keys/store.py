"""Key storage — abstract interface and filesystem implementation.

KeyStore defines the storage contract for private seeds. FilesystemKeyStore
persists each seed as a ``.nk`` text file under a base directory that lives
outside the claim tree, so that claims can be shared without leaking secrets.

Layout::

    <root>/operators/<operator>.nk
    <root>/accounts/<operator>/<account>.nk
    <root>/users/<operator>/<account>/<user>.nk
    <root>/clusters/<operator>/<cluster>.nk
    <root>/servers/<operator>/<cluster>/<server>.nk

The directories above the entity name are the *scope* passed to
:meth:`KeyStore.store`. Seed files are written with mode ``0600``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from trustctl.errors import DecodeError, StoreError
from trustctl.keys.nkey import KeyKind, KeyPair, is_public_key
from trustctl.files import check_name, write_atomic

logger = logging.getLogger(__name__)

KIND_DIRS: dict[KeyKind, str] = {
    KeyKind.OPERATOR: "operators",
    KeyKind.ACCOUNT: "accounts",
    KeyKind.USER: "users",
    KeyKind.CLUSTER: "clusters",
    KeyKind.SERVER: "servers",
}

KEY_EXTENSION = ".nk"


class KeyStore(ABC):
    """Abstract base class for private key storage backends."""

    @abstractmethod
    def store(self, name: str, key_pair: KeyPair, *scope: str) -> Path:
        """Persist the seed of *key_pair* for the entity *name*.

        Parameters
        ----------
        name:
            Entity name.
        key_pair:
            A full key pair. Public-only handles are rejected.
        scope:
            Names of the enclosing entities, outermost first.

        Returns
        -------
        Path
            Where the seed was written, for display to the user.
        """

    @abstractmethod
    def lookup(self, public_key_or_name: str, kind: KeyKind | None = None, *scope: str) -> KeyPair | None:
        """Return the stored key pair for a public key or entity name, or ``None``."""

    @abstractmethod
    def list_keys(self, kind: KeyKind | None = None) -> list[Path]:
        """Return the paths of all stored seeds, optionally filtered by kind."""


class FilesystemKeyStore(KeyStore):
    """Filesystem-backed seed storage.

    Parameters
    ----------
    root:
        Base directory for seed files. Created with mode ``0700`` on first
        write.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # KeyStore interface
    # ------------------------------------------------------------------

    def store(self, name: str, key_pair: KeyPair, *scope: str) -> Path:
        """Write the seed to ``<root>/<kind>/<scope...>/<name>.nk``.

        Raises
        ------
        StoreError
            If the key has no private half or the file cannot be written.
        """
        if not key_pair.has_private or key_pair.seed is None:
            raise StoreError(
                f"unable to store {key_pair.kind.label} key for {name!r} - only the public key is known"
            )
        path = self.key_path(key_pair.kind, name, *scope)
        write_atomic(path, (key_pair.seed + "\n").encode("ascii"), mode=0o600)
        logger.info("Stored %s key %s at %s", key_pair.kind.label, key_pair.public_key, path)
        return path

    def lookup(self, public_key_or_name: str, kind: KeyKind | None = None, *scope: str) -> KeyPair | None:
        """Find a stored key by public key, or by entity name within *scope*.

        Raises
        ------
        StoreError
            If a name lookup without *kind* matches keys of several kinds.
        """
        if is_public_key(public_key_or_name):
            return self._lookup_public_key(public_key_or_name)

        kinds = [kind] if kind is not None else list(KeyKind)
        found: list[KeyPair] = []
        for k in kinds:
            path = self.key_path(k, public_key_or_name, *scope)
            if path.is_file():
                found.append(self._read(path))
        if len(found) > 1:
            raise StoreError(
                f"{public_key_or_name!r} names keys of several kinds - specify the kind"
            )
        return found[0] if found else None

    def list_keys(self, kind: KeyKind | None = None) -> list[Path]:
        """Return sorted paths of stored seeds."""
        dirs = [KIND_DIRS[kind]] if kind is not None else list(KIND_DIRS.values())
        paths: list[Path] = []
        for d in dirs:
            base = self._root / d
            if base.is_dir():
                paths.extend(base.rglob(f"*{KEY_EXTENSION}"))
        return sorted(paths)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def key_path(self, kind: KeyKind, name: str, *scope: str) -> Path:
        """Return the seed location for an entity (the file may not exist)."""
        path = self._root / KIND_DIRS[kind]
        for part in scope:
            path = path / check_name(part, "scope")
        return path / f"{check_name(name)}{KEY_EXTENSION}"

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _lookup_public_key(self, public_key: str) -> KeyPair | None:
        for path in self.list_keys():
            kp = self._read(path)
            if kp.public_key == public_key:
                return kp
        return None

    def _read(self, path: Path) -> KeyPair:
        try:
            seed = path.read_text(encoding="ascii").strip()
        except OSError as exc:
            raise StoreError(f"error reading key file {str(path)!r}: {exc}") from exc
        try:
            return KeyPair.from_seed(seed)
        except DecodeError as exc:
            raise StoreError(f"key file {str(path)!r} does not hold a valid seed: {exc}") from exc


__all__ = ["FilesystemKeyStore", "KEY_EXTENSION", "KIND_DIRS", "KeyStore"]
