#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates the minimal setup for trustctl: create an operator, an account
signed by it and a user signed by the account, then validate the chain.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install trustctl
"""
from __future__ import annotations

import tempfile
from pathlib import Path

import trustctl
from trustctl import (
    ActionContext,
    AddAccountAction,
    AddOperatorAction,
    AddUserAction,
    Settings,
    run_action,
    validate_store,
)


def main() -> None:
    print(f"trustctl version: {trustctl.__version__}")
    root = Path(tempfile.mkdtemp(prefix="trustctl-"))
    settings = Settings(store_root=root / "store", keys_root=root / "keys")

    # Step 1: Create a self-signed operator
    report = run_action(ActionContext.build(settings), AddOperatorAction(name="acme", key="generate"))
    for entry in report:
        print(entry.message)

    # Step 2: Create an account and a user under it
    ctx = ActionContext.build(settings)
    run_action(ctx, AddAccountAction(name="billing", key="generate", tags=["finance"]))
    run_action(ctx, AddUserAction(name="alice", key="generate", parent="billing", allow_pub=["orders.>"]))

    # Step 3: Inspect the stored claims
    store = ctx.require_store()
    account = store.read_account("billing")
    print(f"Account subject: {account.subject}")
    print(f"Issued by operator: {account.issuer == store.read_operator().subject}")

    # Step 4: Validate the whole chain
    result = validate_store(store)
    print(f"Claims valid: {result.ok_count()}, problems: {result.error_count()}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
