"""Tests for trustctl.armor and trustctl.cli.io."""
from __future__ import annotations

from pathlib import Path

import pytest

from trustctl.armor import extract_token, format_jwt
from trustctl.cli.io import read_bytes, write_bytes
from trustctl.errors import StoreError

TOKEN = "eyJhbGciOiJlZDI1NTE5In0.eyJzdWIiOiJBQkMifQ.c2ln"


class TestExtractToken:
    def test_bare_token_is_stripped(self) -> None:
        assert extract_token(f"  {TOKEN}\n") == TOKEN

    def test_armored_token(self) -> None:
        assert extract_token(format_jwt("account", TOKEN)) == TOKEN

    def test_surrounding_text_ignored(self) -> None:
        text = "Your account token:\n\n" + format_jwt("account", TOKEN) + "\nKeep it safe.\n"
        assert extract_token(text) == TOKEN

    def test_wrapped_token_joined(self) -> None:
        text = f"-----BEGIN USER JWT-----\n{TOKEN[:20]}\n{TOKEN[20:]}\n------END USER JWT------\n"
        assert extract_token(text) == TOKEN

    def test_first_block_wins(self) -> None:
        text = format_jwt("account", TOKEN) + format_jwt("user", "other")
        assert extract_token(text) == TOKEN

    def test_bytes_accepted(self) -> None:
        assert extract_token(format_jwt("operator", TOKEN).encode()) == TOKEN


class TestFormatJwt:
    def test_label_upper_cased(self) -> None:
        text = format_jwt("account", TOKEN)
        assert text.startswith("-----BEGIN ACCOUNT JWT-----\n")
        assert text.endswith("------END ACCOUNT JWT------\n")


# ---------------------------------------------------------------------------
# cli.io
# ---------------------------------------------------------------------------


class TestFileIO:
    def test_write_then_read(self, tmp_path: Path) -> None:
        path = tmp_path / "token.jwt"
        write_bytes(str(path), b"data")
        assert read_bytes(str(path)) == b"data"

    def test_write_never_overwrites(self, tmp_path: Path) -> None:
        path = tmp_path / "token.jwt"
        path.write_bytes(b"old")
        with pytest.raises(StoreError, match="already exists"):
            write_bytes(str(path), b"new")
        assert path.read_bytes() == b"old"

    def test_read_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(StoreError, match="error reading"):
            read_bytes(str(tmp_path / "missing.jwt"))
