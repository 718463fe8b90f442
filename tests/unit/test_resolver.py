"""Tests for trustctl.keys.resolver — key specifications to key pairs."""
from __future__ import annotations

from pathlib import Path

import pytest

from trustctl.errors import KeyMismatchError, MissingKeyError
from trustctl.keys.nkey import GENERATE, KeyKind, KeyPair
from trustctl.keys.resolver import load_key, resolve_key


@pytest.fixture()
def account_key() -> KeyPair:
    return KeyPair.generate(KeyKind.ACCOUNT)


# ---------------------------------------------------------------------------
# load_key
# ---------------------------------------------------------------------------


class TestLoadKey:
    def test_generate_literal(self) -> None:
        resolved = load_key(GENERATE, KeyKind.USER)
        assert resolved.generated
        assert resolved.key_pair.kind is KeyKind.USER
        assert resolved.key_pair.has_private

    def test_generate_without_kind_fails(self) -> None:
        with pytest.raises(MissingKeyError):
            load_key(GENERATE)

    def test_seed_gives_full_pair(self, account_key: KeyPair) -> None:
        assert account_key.seed is not None
        resolved = load_key(account_key.seed)
        assert resolved.key_pair.public_key == account_key.public_key
        assert not resolved.public_only
        assert not resolved.generated

    def test_public_key_gives_public_only_handle(self, account_key: KeyPair) -> None:
        resolved = load_key(account_key.public_key)
        assert resolved.public_only
        assert resolved.key_pair.public_key == account_key.public_key

    def test_bare_file(self, tmp_path: Path, account_key: KeyPair) -> None:
        assert account_key.seed is not None
        path = tmp_path / "billing.nk"
        path.write_text(account_key.seed + "\n")
        resolved = load_key(str(path))
        assert resolved.key_pair.public_key == account_key.public_key
        assert resolved.path == path

    def test_armored_file(self, tmp_path: Path, account_key: KeyPair) -> None:
        path = tmp_path / "billing.creds"
        path.write_text(
            "-----BEGIN ACCOUNT NKEY SEED-----\n"
            f"{account_key.seed}\n"
            "------END ACCOUNT NKEY SEED------\n\n"
            "-----BEGIN ACCOUNT PUB KEY-----\n"
            f"{account_key.public_key}\n"
            "------END ACCOUNT PUB KEY------\n"
        )
        resolved = load_key(str(path))
        assert resolved.key_pair.has_private
        assert resolved.key_pair.public_key == account_key.public_key

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MissingKeyError):
            load_key(str(tmp_path / "nope.nk"))


# ---------------------------------------------------------------------------
# resolve_key
# ---------------------------------------------------------------------------


class TestResolveKey:
    def test_kind_mismatch(self, account_key: KeyPair) -> None:
        with pytest.raises(KeyMismatchError, match="not a valid user key"):
            resolve_key(account_key.public_key, KeyKind.USER)

    def test_matching_kind(self, account_key: KeyPair) -> None:
        assert account_key.seed is not None
        resolved = resolve_key(account_key.seed, KeyKind.ACCOUNT)
        assert resolved.key_pair == account_key

    def test_absent_non_interactive_is_an_error(self) -> None:
        with pytest.raises(MissingKeyError):
            resolve_key(None, KeyKind.ACCOUNT)

    def test_interactive_generate(self, scripted: type) -> None:
        prompter = scripted(confirms=[True])
        resolved = resolve_key(None, KeyKind.ACCOUNT, interactive=True, prompter=prompter)
        assert resolved.generated
        assert prompter.asked == ["generate a new account key"]

    def test_interactive_path(self, tmp_path: Path, account_key: KeyPair, scripted: type) -> None:
        assert account_key.seed is not None
        path = tmp_path / "a.nk"
        path.write_text(account_key.seed)
        prompter = scripted(confirms=[False], answers=[str(path)])
        resolved = resolve_key(None, KeyKind.ACCOUNT, interactive=True, prompter=prompter)
        assert resolved.key_pair.public_key == account_key.public_key
        assert not resolved.generated

    def test_interactive_path_of_wrong_kind(self, tmp_path: Path, scripted: type) -> None:
        user = KeyPair.generate(KeyKind.USER)
        assert user.seed is not None
        path = tmp_path / "u.nk"
        path.write_text(user.seed)
        prompter = scripted(confirms=[False], answers=[str(path)])
        with pytest.raises(KeyMismatchError):
            resolve_key(None, KeyKind.ACCOUNT, interactive=True, prompter=prompter)
