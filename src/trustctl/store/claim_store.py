"""Claim storage — the persistent, hierarchical tree of signed claim tokens.

One directory per operator lives under the store root::

    <root>/<operator>/
        .trustctl                       store metadata (JSON)
        <operator>.jwt
        Accounts/<account>/<account>.jwt
        Accounts/<account>/Users/<user>.jwt
        Clusters/<cluster>/<cluster>.jwt
        Clusters/<cluster>/Servers/<server>.jwt

Files hold the exact token text. Every write replaces a single file
atomically, so readers see either the previous claim or the new one.

Private keys are never kept here; :meth:`ClaimStore.resolve_signer` looks
them up in the :class:`~trustctl.keys.store.KeyStore` by the subject of a
stored claim.

Concurrent invocations against the same store are not coordinated: the last
writer of a given file wins.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import cast

from trustctl.claims.model import (
    AccountClaims,
    ClaimType,
    Claims,
    ClusterClaims,
    OperatorClaims,
)
from trustctl.claims.token import decode
from trustctl.errors import DecodeError, StoreError
from trustctl.keys.nkey import KeyPair
from trustctl.keys.store import KeyStore
from trustctl.files import check_name, make_dirs, write_atomic

logger = logging.getLogger(__name__)

STORE_METADATA = ".trustctl"
STORE_VERSION = 1
CLAIM_EXTENSION = ".jwt"

ACCOUNTS_DIR = "Accounts"
USERS_DIR = "Users"
CLUSTERS_DIR = "Clusters"
SERVERS_DIR = "Servers"

# Directory holding the children of a parent entity, keyed by child type.
_CHILD_DIRS: dict[ClaimType, tuple[str, str]] = {
    ClaimType.USER: (ACCOUNTS_DIR, USERS_DIR),
    ClaimType.SERVER: (CLUSTERS_DIR, SERVERS_DIR),
}


class ClaimStore:
    """Filesystem tree of claims for one operator.

    Parameters
    ----------
    root:
        The store root holding one directory per operator.
    operator:
        Name of the operator whose subtree this instance reads and writes.
    key_store:
        Where private keys of stored entities can be looked up. Optional;
        without it :meth:`resolve_signer` always returns ``None``.
    """

    def __init__(self, root: Path, operator: str, key_store: KeyStore | None = None) -> None:
        self._root = Path(root)
        self._operator = check_name(operator, "operator")
        self._key_store = key_store

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, root: Path, token: str, key_store: KeyStore | None = None) -> "ClaimStore":
        """Initialize a new operator directory from a signed operator token.

        Raises
        ------
        StoreError
            If the token is not an operator token or the operator exists.
        """
        claims = decode(token)
        if not isinstance(claims, OperatorClaims):
            raise StoreError(f"cannot create a store from a {claims.claim_type.value} token")
        store = cls(root, claims.name, key_store)
        if store.exists():
            raise StoreError(f"operator {claims.name!r} already exists in {str(root)!r}")
        make_dirs(store.operator_dir)
        meta = {"name": claims.name, "version": STORE_VERSION}
        write_atomic(store.operator_dir / STORE_METADATA, json.dumps(meta, indent=2).encode("utf-8"))
        store.write_raw(token)
        logger.info("Created store for operator %r at %s", claims.name, store.operator_dir)
        return store

    @staticmethod
    def list_operators(root: Path) -> list[str]:
        """Return sorted names of operators found under *root*."""
        root = Path(root)
        if not root.is_dir():
            return []
        return sorted(
            d.name
            for d in root.iterdir()
            if d.is_dir() and (d / f"{d.name}{CLAIM_EXTENSION}").is_file()
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def root(self) -> Path:
        return self._root

    @property
    def operator(self) -> str:
        return self._operator

    @property
    def operator_dir(self) -> Path:
        return self._root / self._operator

    @property
    def key_store(self) -> KeyStore | None:
        return self._key_store

    def exists(self) -> bool:
        """Return True if the operator claim has been written."""
        return self.claim_path(ClaimType.OPERATOR, self._operator).is_file()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def claim_path(self, claim_type: ClaimType, name: str, parent: str = "") -> Path:
        """Return the file a claim lives in (the file may not exist).

        Users and servers need the name of their account or cluster as
        *parent*; other types ignore it.
        """
        base = self.operator_dir
        if claim_type is ClaimType.OPERATOR:
            return base / f"{self._operator}{CLAIM_EXTENSION}"
        check_name(name)
        if claim_type is ClaimType.ACCOUNT:
            return base / ACCOUNTS_DIR / name / f"{name}{CLAIM_EXTENSION}"
        if claim_type is ClaimType.CLUSTER:
            return base / CLUSTERS_DIR / name / f"{name}{CLAIM_EXTENSION}"
        parent_dir, child_dir = _CHILD_DIRS[claim_type]
        if not parent:
            raise StoreError(f"{claim_type.value} {name!r} requires the name of its {claim_type.parent.value}")
        check_name(parent, claim_type.parent.value)
        return base / parent_dir / parent / child_dir / f"{name}{CLAIM_EXTENSION}"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has(self, claim_type: ClaimType, name: str, parent: str = "") -> bool:
        """Return True if a claim named *name* exists in the *parent* scope."""
        return self.claim_path(claim_type, name, parent).is_file()

    def list(self, claim_type: ClaimType, parent: str = "") -> list[str]:
        """Return the sorted names of claims of *claim_type* under *parent*."""
        if claim_type is ClaimType.OPERATOR:
            return [self._operator] if self.exists() else []
        if claim_type in (ClaimType.ACCOUNT, ClaimType.CLUSTER):
            base = self.operator_dir / (ACCOUNTS_DIR if claim_type is ClaimType.ACCOUNT else CLUSTERS_DIR)
            if not base.is_dir():
                return []
            return sorted(
                d.name for d in base.iterdir() if (d / f"{d.name}{CLAIM_EXTENSION}").is_file()
            )
        container = self.claim_path(claim_type, "_", parent).parent
        if not container.is_dir():
            return []
        return sorted(p.stem for p in container.glob(f"*{CLAIM_EXTENSION}") if p.is_file())

    def read_token(self, claim_type: ClaimType, name: str, parent: str = "") -> str:
        """Return the raw token text of a stored claim.

        Raises
        ------
        StoreError
            If the claim does not exist or cannot be read.
        """
        path = self.claim_path(claim_type, name, parent)
        if not path.is_file():
            raise StoreError(f"{claim_type.value} {name!r} does not exist")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise StoreError(f"error reading {str(path)!r}: {exc}") from exc

    def read(self, claim_type: ClaimType, name: str, parent: str = "") -> Claims:
        """Read, verify and decode a stored claim.

        Raises
        ------
        StoreError
            If the claim does not exist.
        DecodeError
            If the stored token is invalid or of a different type.
        """
        claims = decode(self.read_token(claim_type, name, parent))
        if claims.claim_type is not claim_type:
            raise DecodeError(
                f"{str(self.claim_path(claim_type, name, parent))!r} holds a "
                f"{claims.claim_type.value} claim, expected {claim_type.value}"
            )
        return claims

    def read_operator(self) -> OperatorClaims:
        return cast(OperatorClaims, self.read(ClaimType.OPERATOR, self._operator))

    def read_account(self, name: str) -> AccountClaims:
        return cast(AccountClaims, self.read(ClaimType.ACCOUNT, name))

    def read_cluster(self, name: str) -> ClusterClaims:
        return cast(ClusterClaims, self.read(ClaimType.CLUSTER, name))

    def find_by_subject(self, claim_type: ClaimType, subject: str, parent: str = "") -> str | None:
        """Return the name of the stored claim whose subject is *subject*."""
        for name in self.list(claim_type, parent):
            if self.read(claim_type, name, parent).subject == subject:
                return name
        return None

    def resolve_signer(self, claim_type: ClaimType, name: str, parent: str = "") -> KeyPair | None:
        """Return the stored private key for a stored entity, or ``None``."""
        if self._key_store is None:
            return None
        claims = self.read(claim_type, name, parent)
        return self._key_store.lookup(claims.subject)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def write_raw(self, token: str) -> Path:
        """Decode *token*, find its place in the tree, and write it there.

        An existing claim at that place is replaced. Users and servers are
        placed under the account or cluster whose subject issued them;
        accounts and clusters must be issued by this store's operator.

        Returns
        -------
        Path
            The file that was written.

        Raises
        ------
        DecodeError
            If the token is invalid.
        StoreError
            If the token does not belong in this store or cannot be written.
        """
        token = token.strip()
        claims = decode(token)
        claim_type = claims.claim_type
        parent = ""

        if claim_type in (ClaimType.ACCOUNT, ClaimType.CLUSTER):
            operator = self.read_operator()
            if claims.issuer != operator.subject:
                raise StoreError(
                    f"{claim_type.value} {claims.name!r} is not issued by operator {self._operator!r}"
                )
        elif claim_type in (ClaimType.USER, ClaimType.SERVER):
            parent_type = claim_type.parent
            found = self.find_by_subject(parent_type, claims.issuer)
            if found is None:
                raise StoreError(
                    f"no {parent_type.value} with key {claims.issuer} is known to issue "
                    f"{claim_type.value} {claims.name!r}"
                )
            parent = found

        path = self.claim_path(claim_type, claims.name, parent)
        write_atomic(path, (token + "\n").encode("utf-8"))
        logger.info("Stored %s %r at %s", claim_type.value, claims.name, path)
        return path


__all__ = [
    "ACCOUNTS_DIR",
    "CLAIM_EXTENSION",
    "CLUSTERS_DIR",
    "ClaimStore",
    "SERVERS_DIR",
    "STORE_METADATA",
    "USERS_DIR",
]
