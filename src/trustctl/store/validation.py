"""Store validation — check every stored claim against its parent.

Walks an operator's tree top-down. Each claim must decode, be of the type
its location implies, carry the name of its file, and be issued by the
subject of the claim above it. Expired claims are reported as warnings.
"""
from __future__ import annotations

import logging

from trustctl.claims.model import ClaimsBase, ClaimType
from trustctl.errors import TrustctlError
from trustctl.store.claim_store import ClaimStore
from trustctl.store.report import Report

logger = logging.getLogger(__name__)


def _check(
    report: Report,
    store: ClaimStore,
    claim_type: ClaimType,
    name: str,
    parent: str = "",
    issuer: str | None = None,
) -> ClaimsBase | None:
    try:
        claims = store.read(claim_type, name, parent)
    except TrustctlError as exc:
        report.add_error("%s %r: %s", claim_type.value, name, exc, error=exc)
        return None

    failed = False
    if claims.name != name:
        report.add_error("%s %r: claim is named %r", claim_type.value, name, claims.name)
        failed = True
    if issuer is not None and claims.issuer != issuer:
        report.add_error(
            "%s %r: issued by %s, expected %s", claim_type.value, name, claims.issuer, issuer
        )
        failed = True
    if claims.is_expired():
        report.add_warning("%s %r: claim has expired", claim_type.value, name)
    elif not failed:
        report.add_ok("%s %r", claim_type.value, name)
    return claims


def validate_store(store: ClaimStore) -> Report:
    """Validate every claim in *store*.

    Returns
    -------
    Report
        One entry per claim checked, plus one per problem found.
    """
    report = Report(label=f"validate {store.operator}")
    operator = _check(report, store, ClaimType.OPERATOR, store.operator)
    if operator is None:
        return report
    if not operator.is_self_signed():
        report.add_error("operator %r: claim is not self-signed", store.operator)

    for parent_type, child_type in ((ClaimType.ACCOUNT, ClaimType.USER), (ClaimType.CLUSTER, ClaimType.SERVER)):
        for parent_name in store.list(parent_type):
            parent = _check(report, store, parent_type, parent_name, issuer=operator.subject)
            for child_name in store.list(child_type, parent_name):
                _check(
                    report,
                    store,
                    child_type,
                    child_name,
                    parent_name,
                    issuer=parent.subject if parent is not None else None,
                )

    logger.info(
        "Validated operator %r: %d ok, %d errors", store.operator, report.ok_count(), report.error_count()
    )
    return report


__all__ = ["validate_store"]
