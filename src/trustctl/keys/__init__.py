"""Identity keys: kind-tagged Ed25519 key pairs, their resolution and storage.

Submodules
----------
nkey
    KeyKind, KeyPair and the text encoding of public keys and seeds.
resolver
    Turns user input (seed, public key, path, ``generate``) into a key.
store
    KeyStore and FilesystemKeyStore for private seeds.
"""
from __future__ import annotations

from trustctl.keys.nkey import KeyKind, KeyPair, parse_key
from trustctl.keys.resolver import ResolvedKey, load_key, resolve_key
from trustctl.keys.store import FilesystemKeyStore, KeyStore

__all__ = [
    "FilesystemKeyStore",
    "KeyKind",
    "KeyPair",
    "KeyStore",
    "ResolvedKey",
    "load_key",
    "parse_key",
    "resolve_key",
]
