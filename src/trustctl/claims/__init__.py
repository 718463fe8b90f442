"""Claims: the signed statements binding entities to their keys."""
from __future__ import annotations

from trustctl.claims.entity import Editor, Entity, time_editor
from trustctl.claims.model import (
    AccountClaims,
    Claims,
    ClaimsBase,
    ClaimType,
    ClusterClaims,
    OperatorClaims,
    ServerClaims,
    UserClaims,
    claims_class_for,
)
from trustctl.claims.timeparams import TimeParams, parse_time
from trustctl.claims.token import decode, decode_generic, encode, parse_decorated

__all__ = [
    "AccountClaims",
    "ClaimType",
    "Claims",
    "ClaimsBase",
    "ClusterClaims",
    "Editor",
    "Entity",
    "OperatorClaims",
    "ServerClaims",
    "TimeParams",
    "UserClaims",
    "claims_class_for",
    "decode",
    "decode_generic",
    "encode",
    "parse_decorated",
    "parse_time",
    "time_editor",
]
