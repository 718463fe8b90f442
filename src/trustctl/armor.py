"""Armoring for tokens and keys shown to or pasted by users.

Armored text wraps a token between ``BEGIN``/``END`` marker lines::

    -----BEGIN ACCOUNT JWT-----
    eyJ0eXAiOiJqd3QiLCJhbGciOiJlZDI1NTE5In0...
    ------END ACCOUNT JWT------

:func:`extract_token` accepts armored or bare text. The first armored block
wins; text around it (banners, notes) is ignored, and a token wrapped over
several lines is joined back together.
"""
from __future__ import annotations

import re

_BEGIN = re.compile(r"^-+\s*BEGIN\b.*\b(?:JWT|KEY|SEED)\s*-+$")
_END = re.compile(r"^-+\s*END\b.*\b(?:JWT|KEY|SEED)\s*-+$")


def extract_token(text: str | bytes) -> str:
    """Return the token inside armored *text*, or *text* stripped when bare."""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    body: list[str] | None = None
    for line in text.splitlines():
        line = line.strip()
        if body is None:
            if _BEGIN.match(line):
                body = []
        elif _END.match(line):
            if body:
                return "".join(body)
            body = None
        elif line:
            body.append(line)
    return text.strip()


def format_jwt(label: str, token: str) -> str:
    """Armor a token, e.g. ``format_jwt("account", token)``."""
    label = label.upper()
    return (
        f"-----BEGIN {label} JWT-----\n"
        f"{token}\n"
        f"------END {label} JWT------\n"
    )


__all__ = ["extract_token", "format_jwt"]
