"""Pull — synchronize local claims with the operator's account server.

The pull runs in three stages:

1. Build one :class:`PullJob` per target: the operator and every account
   for ``--all``, otherwise the named account.
2. Fetch every job in parallel. Jobs share no state; each owns its HTTP
   client, status and body. The executor is left only after every job has
   finished, so reconciliation always sees the complete remote picture.
3. Reconcile the jobs one by one in job order, writing accepted tokens to the
   claim store and recording one report entry per job. A failing job never
   stops the others.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, Optional

import httpx

from trustctl.actions.lifecycle import Action
from trustctl.claims.model import Claims, ClaimsBase, ClaimType, OperatorClaims
from trustctl.claims.token import decode, parse_decorated
from trustctl.errors import ConflictError, DecodeError, TransportError, TrustctlError, UsageError
from trustctl.store.claim_store import ClaimStore
from trustctl.store.report import Report

if TYPE_CHECKING:
    from trustctl.context import ActionContext

logger = logging.getLogger(__name__)

PULLABLE_TYPES = (ClaimType.OPERATOR, ClaimType.ACCOUNT)


@dataclass
class PullJob:
    """One remote fetch and everything learned from it.

    Parameters
    ----------
    name:
        Local name of the entity being pulled.
    claim_type:
        Type of the local claim (operator or account).
    url:
        Where the remote token is fetched from.
    local_claim:
        The local claim at the time the job list was built.
    """

    name: str
    claim_type: ClaimType
    url: str
    local_claim: Optional[ClaimsBase] = None
    status_code: int = 0
    data: bytes = b""
    err: Optional[BaseException] = None
    store_err: Optional[BaseException] = None

    def run(self, timeout: float, transport: httpx.BaseTransport | None = None) -> None:
        """Fetch the remote token. Network failures are kept on the job."""
        try:
            with httpx.Client(timeout=timeout, transport=transport) as client:
                response = client.get(self.url)
        except httpx.HTTPError as exc:
            self.err = TransportError(f"error pulling {self.claim_type.value} {self.name!r} from {self.url}: {exc}")
            logger.info("Pull of %s %r failed: %s", self.claim_type.value, self.name, exc)
            return
        self.status_code = response.status_code
        self.data = response.content
        logger.info("Fetched %s %r from %s (%d)", self.claim_type.value, self.name, self.url, self.status_code)

    def error(self) -> BaseException | None:
        """Return why this job cannot be reconciled, or ``None``."""
        if self.store_err is not None:
            return self.store_err
        if self.err is not None:
            return self.err
        if not 200 <= self.status_code < 300:
            return TransportError(
                f"pulling {self.claim_type.value} {self.name!r} from {self.url} "
                f"returned status {self.status_code}"
            )
        try:
            self.token()
        except TrustctlError as exc:
            return exc
        return None

    def token(self) -> Claims:
        """Decode the fetched token.

        Raises
        ------
        DecodeError
            If the body is empty, not a valid token, or neither an account
            nor an operator token.
        """
        try:
            claims = decode(parse_decorated(self.data))
        except DecodeError as exc:
            raise DecodeError(f"invalid token for {self.claim_type.value} {self.name!r}: {exc}") from exc
        if claims.claim_type not in PULLABLE_TYPES:
            raise DecodeError(f"remote {self.claim_type.value} {self.name!r} is a {claims.claim_type.value} token")
        return claims

    def message(self) -> str:
        err = self.error()
        if err is not None:
            return str(err)
        return f"pulled {self.token().claim_type.value} {self.name!r} from the remote server"


@dataclass
class PullJobs:
    """Ordered pull jobs."""

    jobs: list[PullJob] = field(default_factory=list)

    def __iter__(self) -> Iterator[PullJob]:
        return iter(self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)

    def add(self, job: PullJob) -> None:
        self.jobs.append(job)

    def error_count(self) -> int:
        return sum(1 for job in self.jobs if job.error() is not None)

    def has_errors(self) -> bool:
        return self.error_count() > 0


def _join(base: str, *parts: str) -> str:
    return "/".join([base.rstrip("/"), *parts])


class PullAction(Action):
    """Fetch operator and account tokens from the account server.

    Parameters
    ----------
    all_accounts:
        Pull the operator and every local account.
    account:
        Pull only this account.
    overwrite:
        Replace local claims even when they are newer than the remote ones.
    """

    def __init__(self, all_accounts: bool = False, account: str | None = None, overwrite: bool = False) -> None:
        self.all_accounts = all_accounts
        self.account = account or ""
        self.overwrite = overwrite
        self.operator: OperatorClaims | None = None
        self.jobs = PullJobs()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def set_defaults(self, ctx: "ActionContext") -> None:
        if self.account:
            self.all_accounts = False

    def pre_interactive(self, ctx: "ActionContext") -> None:
        assert ctx.prompter is not None
        if self.all_accounts or self.account:
            return
        self.all_accounts = ctx.prompter.confirm("pull the operator and all accounts", default=True)
        if not self.all_accounts:
            accounts = ctx.require_store().list(ClaimType.ACCOUNT)
            if not accounts:
                raise UsageError("no accounts defined - add one first")
            self.account = ctx.prompter.select("select account", accounts, default=accounts[0])

    def load(self, ctx: "ActionContext") -> None:
        store = ctx.require_store()
        self.operator = store.read_operator()

    def post_interactive(self, ctx: "ActionContext") -> None:
        if not self.overwrite:
            assert ctx.prompter is not None
            self.overwrite = ctx.prompter.confirm("overwrite local claims that are newer than the remote", default=False)

    def validate(self, ctx: "ActionContext") -> None:
        assert self.operator is not None
        if not self.all_accounts and not self.account:
            raise UsageError("specify --all or --account")
        if not self.operator.account_server_url:
            raise UsageError(
                f"operator {self.operator.name!r} doesn't set account server url - unable to pull"
            )
        if self.account and not ctx.require_store().has(ClaimType.ACCOUNT, self.account):
            raise UsageError(f"account {self.account!r} does not exist")

    def run(self, ctx: "ActionContext") -> Report:
        store = ctx.require_store()
        self.jobs = self.build_jobs(store)
        self.fetch(ctx)
        return self.reconcile(store)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def build_jobs(self, store: ClaimStore) -> PullJobs:
        assert self.operator is not None
        base = self.operator.account_server_url
        jobs = PullJobs()
        if self.all_accounts:
            jobs.add(PullJob(self.operator.name, ClaimType.OPERATOR, _join(base, "operator"), self.operator))
            names = store.list(ClaimType.ACCOUNT)
        else:
            names = [self.account]
        for name in names:
            claim = store.read_account(name)
            jobs.add(PullJob(name, ClaimType.ACCOUNT, _join(base, "accounts", claim.subject), claim))
        logger.debug("Built %d pull jobs", len(jobs))
        return jobs

    def fetch(self, ctx: "ActionContext") -> None:
        if not len(self.jobs):
            return
        workers = min(ctx.settings.max_workers, len(self.jobs))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                (job, pool.submit(job.run, ctx.settings.http_timeout, ctx.transport))
                for job in self.jobs
            ]
        for job, future in futures:
            exc = future.exception()
            if exc is not None:
                job.err = TransportError(f"error pulling {job.claim_type.value} {job.name!r}: {exc}")

    def reconcile(self, store: ClaimStore) -> Report:
        report = Report(label="pull")
        for job in self.jobs:
            err = job.error()
            if err is not None:
                report.add_error("%s", err, error=err)
                continue
            remote = job.token()
            local = job.local_claim
            if local is not None and remote.subject != local.subject:
                job.store_err = DecodeError(
                    f"remote {job.claim_type.value} {job.name!r} has subject {remote.subject}, "
                    f"local subject is {local.subject}"
                )
                report.add_from_error(job.store_err)
                continue
            if local is not None and local.issued_at > remote.issued_at and not self.overwrite:
                job.store_err = ConflictError(
                    f"local jwt for {job.name!r} is newer than remote version - specify --force to overwrite"
                )
                report.add_from_error(job.store_err)
                continue
            try:
                store.write_raw(remote.token)
            except TrustctlError as exc:
                job.store_err = exc
                report.add_from_error(exc)
                continue
            report.add_ok(job.message())
        return report


__all__ = ["PULLABLE_TYPES", "PullAction", "PullJob", "PullJobs"]
