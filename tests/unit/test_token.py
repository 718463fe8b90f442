"""Tests for trustctl.claims.token — signing, verification and typed decoding."""
from __future__ import annotations

import base64
import json

import pytest

from trustctl.armor import format_jwt
from trustctl.claims.model import AccountClaims, OperatorClaims, UserClaims
from trustctl.claims.token import (
    _HEADER_B64,
    _b64encode,
    _canonical_json,
    decode,
    decode_generic,
    encode,
    parse_decorated,
)
from trustctl.errors import DecodeError, KeyMismatchError, MissingKeyError
from trustctl.keys.nkey import KeyKind, KeyPair


@pytest.fixture()
def operator_key() -> KeyPair:
    return KeyPair.generate(KeyKind.OPERATOR)


@pytest.fixture()
def account_key() -> KeyPair:
    return KeyPair.generate(KeyKind.ACCOUNT)


def _sign_payload(payload: dict, signer: KeyPair) -> str:
    signing_input = f"{_HEADER_B64}.{_b64encode(_canonical_json(payload))}"
    return f"{signing_input}.{_b64encode(signer.sign(signing_input.encode('ascii')))}"


def _payload_of(token: str) -> dict:
    segment = token.split(".")[1]
    return json.loads(base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4)))


# ---------------------------------------------------------------------------
# encode / decode
# ---------------------------------------------------------------------------


class TestEncodeDecode:
    def test_account_token_decodes_to_account_claims(self, operator_key: KeyPair, account_key: KeyPair) -> None:
        claims = AccountClaims(subject=account_key.public_key, name="billing", issued_at=1_700_000_000)
        token = encode(claims, operator_key)
        decoded = decode(token)
        assert isinstance(decoded, AccountClaims)
        assert decoded.subject == account_key.public_key
        assert decoded.issuer == operator_key.public_key
        assert decoded.name == "billing"
        assert decoded.issued_at == 1_700_000_000
        assert decoded.token == token
        assert decoded.claim_id

    def test_attributes_survive(self, account_key: KeyPair) -> None:
        user_key = KeyPair.generate(KeyKind.USER)
        claims = UserClaims(
            subject=user_key.public_key,
            name="alice",
            issued_at=10,
            expires=99,
            tags=["dev"],
            allow_pub=["orders.>"],
            allow_sub=["_INBOX.>"],
        )
        decoded = decode(encode(claims, account_key))
        assert isinstance(decoded, UserClaims)
        assert decoded.allow_pub == ["orders.>"]
        assert decoded.allow_sub == ["_INBOX.>"]
        assert decoded.expires == 99
        assert decoded.tags == ["dev"]

    def test_encode_does_not_modify_claims(self, operator_key: KeyPair, account_key: KeyPair) -> None:
        claims = AccountClaims(subject=account_key.public_key, name="billing")
        encode(claims, operator_key)
        assert claims.issuer == ""
        assert claims.claim_id == ""

    def test_operator_is_self_signed(self, operator_key: KeyPair) -> None:
        claims = OperatorClaims(subject=operator_key.public_key, name="acme", account_server_url="http://x")
        decoded = decode(encode(claims, operator_key))
        assert isinstance(decoded, OperatorClaims)
        assert decoded.is_self_signed()
        assert decoded.account_server_url == "http://x"

    def test_operator_signed_by_other_operator_rejected(self, operator_key: KeyPair) -> None:
        claims = OperatorClaims(subject=operator_key.public_key, name="acme")
        with pytest.raises(KeyMismatchError):
            encode(claims, KeyPair.generate(KeyKind.OPERATOR))

    def test_account_signed_by_account_rejected(self, account_key: KeyPair) -> None:
        claims = AccountClaims(subject=KeyPair.generate(KeyKind.ACCOUNT).public_key, name="x")
        with pytest.raises(KeyMismatchError):
            encode(claims, account_key)

    def test_public_only_signer_rejected(self, operator_key: KeyPair, account_key: KeyPair) -> None:
        claims = AccountClaims(subject=account_key.public_key, name="billing")
        with pytest.raises(MissingKeyError):
            encode(claims, operator_key.public_only())

    def test_claim_id_is_deterministic(self, operator_key: KeyPair, account_key: KeyPair) -> None:
        claims = AccountClaims(subject=account_key.public_key, name="billing", issued_at=5)
        first = decode(encode(claims, operator_key))
        second = decode(encode(claims, operator_key))
        assert first.claim_id == second.claim_id


# ---------------------------------------------------------------------------
# Verification failures
# ---------------------------------------------------------------------------


class TestVerification:
    def test_tampered_payload_rejected(self, operator_key: KeyPair, account_key: KeyPair) -> None:
        token = encode(AccountClaims(subject=account_key.public_key, name="billing"), operator_key)
        header, _, signature = token.split(".")
        payload = _payload_of(token)
        payload["name"] = "evil"
        forged = f"{header}.{_b64encode(_canonical_json(payload))}.{signature}"
        with pytest.raises(DecodeError, match="signature"):
            decode(forged)

    def test_wrong_part_count(self) -> None:
        with pytest.raises(DecodeError, match="3 dot-separated parts"):
            decode_generic("abc.def")

    def test_unknown_type_rejected(self, operator_key: KeyPair) -> None:
        token = _sign_payload(
            {"iss": operator_key.public_key, "sub": operator_key.public_key, "type": "gizmo", "iat": 1},
            operator_key,
        )
        assert decode_generic(token).claim_type == "gizmo"
        with pytest.raises(DecodeError, match="unsupported token type"):
            decode(token)

    def test_subject_of_wrong_kind_rejected(self, operator_key: KeyPair) -> None:
        token = _sign_payload(
            {
                "iss": operator_key.public_key,
                "sub": KeyPair.generate(KeyKind.USER).public_key,
                "type": "account",
                "name": "bad",
                "iat": 1,
            },
            operator_key,
        )
        with pytest.raises(DecodeError):
            decode(token)


# ---------------------------------------------------------------------------
# parse_decorated
# ---------------------------------------------------------------------------


class TestParseDecorated:
    def test_bare_token(self, operator_key: KeyPair, account_key: KeyPair) -> None:
        token = encode(AccountClaims(subject=account_key.public_key, name="billing"), operator_key)
        assert parse_decorated(f"  {token}\n") == token

    def test_armored_token(self, operator_key: KeyPair, account_key: KeyPair) -> None:
        token = encode(AccountClaims(subject=account_key.public_key, name="billing"), operator_key)
        text = "Issued by acme\n\n" + format_jwt("account", token)
        assert parse_decorated(text.encode()) == token

    def test_empty(self) -> None:
        with pytest.raises(DecodeError, match="no data"):
            parse_decorated(b"   ")
