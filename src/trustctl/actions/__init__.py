"""Commands built on the action lifecycle.

Quick start
-----------
::

    from trustctl.actions import AddAccountAction, run_action

    report = run_action(ctx, AddAccountAction(name="billing", key="generate"))
    for entry in report:
        print(entry.status.value, entry.message)
"""
from __future__ import annotations

from trustctl.actions.entities import (
    AddAccountAction,
    AddClusterAction,
    AddOperatorAction,
    AddServerAction,
    AddUserAction,
    EditAccountAction,
    EditOperatorAction,
)
from trustctl.actions.lifecycle import Action, run_action
from trustctl.actions.pull import PullAction, PullJob, PullJobs

__all__ = [
    "Action",
    "AddAccountAction",
    "AddClusterAction",
    "AddOperatorAction",
    "AddServerAction",
    "AddUserAction",
    "EditAccountAction",
    "EditOperatorAction",
    "PullAction",
    "PullJob",
    "PullJobs",
    "run_action",
]
