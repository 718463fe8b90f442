"""Tests for trustctl.store.claim_store — the on-disk claim tree."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from trustctl.claims.model import (
    AccountClaims,
    ClaimType,
    ClusterClaims,
    OperatorClaims,
    ServerClaims,
    UserClaims,
)
from trustctl.claims.token import encode
from trustctl.errors import DecodeError, StoreError
from trustctl.keys.nkey import KeyKind, KeyPair
from trustctl.keys.store import FilesystemKeyStore
from trustctl.store.claim_store import ClaimStore


@pytest.fixture()
def keys() -> dict[str, KeyPair]:
    return {
        "acme": KeyPair.generate(KeyKind.OPERATOR),
        "billing": KeyPair.generate(KeyKind.ACCOUNT),
        "alice": KeyPair.generate(KeyKind.USER),
        "east": KeyPair.generate(KeyKind.CLUSTER),
        "n1": KeyPair.generate(KeyKind.SERVER),
    }


@pytest.fixture()
def key_store(tmp_path: Path) -> FilesystemKeyStore:
    return FilesystemKeyStore(tmp_path / "keys")


@pytest.fixture()
def store(tmp_path: Path, keys: dict[str, KeyPair], key_store: FilesystemKeyStore) -> ClaimStore:
    op = keys["acme"]
    token = encode(OperatorClaims(subject=op.public_key, name="acme", issued_at=1), op)
    return ClaimStore.create(tmp_path / "store", token, key_store)


def _account_token(keys: dict[str, KeyPair], name: str = "billing", issued_at: int = 2) -> str:
    return encode(AccountClaims(subject=keys["billing"].public_key, name=name, issued_at=issued_at), keys["acme"])


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestCreate:
    def test_layout_and_metadata(self, store: ClaimStore, tmp_path: Path) -> None:
        assert store.exists()
        assert (tmp_path / "store" / "acme" / "acme.jwt").is_file()
        meta = json.loads((tmp_path / "store" / "acme" / ".trustctl").read_text())
        assert meta["name"] == "acme"

    def test_create_twice_fails(self, store: ClaimStore, keys: dict[str, KeyPair], tmp_path: Path) -> None:
        op = keys["acme"]
        token = encode(OperatorClaims(subject=op.public_key, name="acme", issued_at=5), op)
        with pytest.raises(StoreError, match="already exists"):
            ClaimStore.create(tmp_path / "store", token)

    def test_create_from_account_token_fails(self, keys: dict[str, KeyPair], tmp_path: Path) -> None:
        with pytest.raises(StoreError):
            ClaimStore.create(tmp_path / "other", _account_token(keys))

    def test_list_operators(self, store: ClaimStore, tmp_path: Path) -> None:
        assert ClaimStore.list_operators(tmp_path / "store") == ["acme"]
        assert ClaimStore.list_operators(tmp_path / "missing") == []


# ---------------------------------------------------------------------------
# Writing and reading
# ---------------------------------------------------------------------------


class TestWriteRead:
    def test_account_round_trip(self, store: ClaimStore, keys: dict[str, KeyPair]) -> None:
        token = _account_token(keys)
        path = store.write_raw(token)
        assert path == store.claim_path(ClaimType.ACCOUNT, "billing")
        assert store.read_token(ClaimType.ACCOUNT, "billing") == token
        claims = store.read_account("billing")
        assert claims.subject == keys["billing"].public_key
        assert claims.issuer == keys["acme"].public_key

    def test_user_placed_under_issuing_account(self, store: ClaimStore, keys: dict[str, KeyPair]) -> None:
        store.write_raw(_account_token(keys))
        token = encode(UserClaims(subject=keys["alice"].public_key, name="alice", issued_at=3), keys["billing"])
        path = store.write_raw(token)
        assert path == store.claim_path(ClaimType.USER, "alice", "billing")
        assert store.list(ClaimType.USER, "billing") == ["alice"]
        assert store.read(ClaimType.USER, "alice", "billing").name == "alice"

    def test_server_placed_under_issuing_cluster(self, store: ClaimStore, keys: dict[str, KeyPair]) -> None:
        store.write_raw(encode(ClusterClaims(subject=keys["east"].public_key, name="east", issued_at=2), keys["acme"]))
        store.write_raw(encode(ServerClaims(subject=keys["n1"].public_key, name="n1", issued_at=3), keys["east"]))
        assert store.list(ClaimType.CLUSTER) == ["east"]
        assert store.list(ClaimType.SERVER, "east") == ["n1"]

    def test_user_of_unknown_account_rejected(self, store: ClaimStore, keys: dict[str, KeyPair]) -> None:
        token = encode(UserClaims(subject=keys["alice"].public_key, name="alice"), keys["billing"])
        with pytest.raises(StoreError, match="no account"):
            store.write_raw(token)

    def test_account_of_other_operator_rejected(self, store: ClaimStore, keys: dict[str, KeyPair]) -> None:
        other = KeyPair.generate(KeyKind.OPERATOR)
        token = encode(AccountClaims(subject=keys["billing"].public_key, name="billing"), other)
        with pytest.raises(StoreError, match="not issued by operator"):
            store.write_raw(token)

    def test_overwrite_replaces_file(self, store: ClaimStore, keys: dict[str, KeyPair]) -> None:
        store.write_raw(_account_token(keys, issued_at=2))
        newer = _account_token(keys, issued_at=9)
        store.write_raw(newer)
        assert store.read_account("billing").issued_at == 9
        assert not list(store.claim_path(ClaimType.ACCOUNT, "billing").parent.glob("*.tmp"))

    def test_invalid_token_rejected(self, store: ClaimStore) -> None:
        with pytest.raises(DecodeError):
            store.write_raw("not.a.token")

    def test_read_missing(self, store: ClaimStore) -> None:
        assert not store.has(ClaimType.ACCOUNT, "ghost")
        with pytest.raises(StoreError, match="does not exist"):
            store.read(ClaimType.ACCOUNT, "ghost")

    def test_read_type_mismatch(self, store: ClaimStore, keys: dict[str, KeyPair]) -> None:
        path = store.claim_path(ClaimType.CLUSTER, "billing")
        path.parent.mkdir(parents=True)
        path.write_text(_account_token(keys))
        with pytest.raises(DecodeError, match="expected cluster"):
            store.read(ClaimType.CLUSTER, "billing")

    def test_user_path_requires_parent(self, store: ClaimStore) -> None:
        with pytest.raises(StoreError):
            store.claim_path(ClaimType.USER, "alice")


# ---------------------------------------------------------------------------
# Signer lookup
# ---------------------------------------------------------------------------


class TestResolveSigner:
    def test_found_in_key_store(
        self, store: ClaimStore, keys: dict[str, KeyPair], key_store: FilesystemKeyStore
    ) -> None:
        key_store.store("acme", keys["acme"])
        assert store.resolve_signer(ClaimType.OPERATOR, "acme") == keys["acme"]

    def test_absent_key(self, store: ClaimStore) -> None:
        assert store.resolve_signer(ClaimType.OPERATOR, "acme") is None

    def test_without_key_store(self, store: ClaimStore) -> None:
        bare = ClaimStore(store.root, "acme")
        assert bare.resolve_signer(ClaimType.OPERATOR, "acme") is None
