"""Test that the quickstart from the package docstring works for trustctl."""
from __future__ import annotations

from pathlib import Path


def _settings(tmp_path: Path):
    from trustctl import Settings

    return Settings(store_root=tmp_path / "store", keys_root=tmp_path / "keys")


def test_quickstart_import() -> None:
    import trustctl

    assert trustctl.__version__ == "0.1.0"


def test_quickstart_operator_and_account(tmp_path: Path) -> None:
    from trustctl import ActionContext, AddAccountAction, AddOperatorAction, run_action

    run_action(ActionContext.build(_settings(tmp_path)), AddOperatorAction(name="acme", key="generate"))
    ctx = ActionContext.build(_settings(tmp_path))
    report = run_action(ctx, AddAccountAction(name="billing", key="generate"))
    assert not report.has_errors()
    assert ctx.require_store().list_operators(tmp_path / "store") == ["acme"]


def test_quickstart_chain_validates(tmp_path: Path) -> None:
    from trustctl import ActionContext, AddAccountAction, AddOperatorAction, AddUserAction, run_action, validate_store

    run_action(ActionContext.build(_settings(tmp_path)), AddOperatorAction(name="acme", key="generate"))
    ctx = ActionContext.build(_settings(tmp_path))
    run_action(ctx, AddAccountAction(name="billing", key="generate"))
    run_action(ctx, AddUserAction(name="alice", key="generate", parent="billing"))
    report = validate_store(ctx.require_store())
    assert report.ok_count() == 3
    assert not report.has_errors()


def test_quickstart_account_issued_by_operator(tmp_path: Path) -> None:
    from trustctl import ActionContext, AddAccountAction, AddOperatorAction, run_action

    run_action(ActionContext.build(_settings(tmp_path)), AddOperatorAction(name="acme", key="generate"))
    ctx = ActionContext.build(_settings(tmp_path))
    run_action(ctx, AddAccountAction(name="billing", key="generate"))
    store = ctx.require_store()
    assert store.read_account("billing").issuer == store.read_operator().subject
