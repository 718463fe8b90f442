"""Claim storage on disk, plus the reports actions produce."""
from __future__ import annotations

from trustctl.store.claim_store import ClaimStore
from trustctl.store.report import Report, ReportEntry, Status
from trustctl.store.validation import validate_store

__all__ = ["ClaimStore", "Report", "ReportEntry", "Status", "validate_store"]
