"""trustctl — manage an operator/account/user trust hierarchy of signed claims.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import trustctl
>>> trustctl.__version__
'0.1.0'

Quick start
-----------
::

    from trustctl import ActionContext, AddOperatorAction, AddAccountAction, Settings, run_action

    ctx = ActionContext.build(Settings(store_root=root / "store", keys_root=root / "keys"))
    run_action(ctx, AddOperatorAction(name="acme", key="generate"))

    ctx = ActionContext.build(Settings(store_root=root / "store", keys_root=root / "keys"))
    run_action(ctx, AddAccountAction(name="billing", key="generate"))
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Keys
# ------------------------------------------------------------------
from trustctl.keys.nkey import KeyKind, KeyPair
from trustctl.keys.resolver import ResolvedKey, resolve_key
from trustctl.keys.store import FilesystemKeyStore, KeyStore

# ------------------------------------------------------------------
# Claims
# ------------------------------------------------------------------
from trustctl.claims.model import (
    AccountClaims,
    Claims,
    ClaimsBase,
    ClaimType,
    ClusterClaims,
    OperatorClaims,
    ServerClaims,
    UserClaims,
)
from trustctl.claims.timeparams import TimeParams
from trustctl.claims.token import decode, encode

# ------------------------------------------------------------------
# Storage
# ------------------------------------------------------------------
from trustctl.store.claim_store import ClaimStore
from trustctl.store.report import Report, ReportEntry, Status
from trustctl.store.validation import validate_store

# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------
from trustctl.actions import (
    Action,
    AddAccountAction,
    AddClusterAction,
    AddOperatorAction,
    AddServerAction,
    AddUserAction,
    EditAccountAction,
    EditOperatorAction,
    PullAction,
    run_action,
)
from trustctl.config import Settings
from trustctl.context import ActionContext
from trustctl.errors import (
    ActionError,
    ClaimTypeError,
    ConflictError,
    DecodeError,
    KeyMismatchError,
    MissingKeyError,
    StoreError,
    TransportError,
    TrustctlError,
    UsageError,
)

__all__ = [
    "__version__",
    # keys
    "FilesystemKeyStore",
    "KeyKind",
    "KeyPair",
    "KeyStore",
    "ResolvedKey",
    "resolve_key",
    # claims
    "AccountClaims",
    "ClaimType",
    "Claims",
    "ClaimsBase",
    "ClusterClaims",
    "OperatorClaims",
    "ServerClaims",
    "TimeParams",
    "UserClaims",
    "decode",
    "encode",
    # storage
    "ClaimStore",
    "Report",
    "ReportEntry",
    "Status",
    "validate_store",
    # actions
    "Action",
    "ActionContext",
    "AddAccountAction",
    "AddClusterAction",
    "AddOperatorAction",
    "AddServerAction",
    "AddUserAction",
    "EditAccountAction",
    "EditOperatorAction",
    "PullAction",
    "Settings",
    "run_action",
    # errors
    "ActionError",
    "ClaimTypeError",
    "ConflictError",
    "DecodeError",
    "KeyMismatchError",
    "MissingKeyError",
    "StoreError",
    "TransportError",
    "TrustctlError",
    "UsageError",
]
