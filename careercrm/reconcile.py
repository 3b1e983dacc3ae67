"""Merging email analyses into the application record collection.

Each job-related analysis is matched against the existing records by company
name. A match is updated in place (status, email history, recruiter contacts);
no match creates a new record keyed by the id of the email that introduced it.

Email and contact lists are deduplicated, so re-processing an email that was
already merged leaves them unchanged. ``status`` and ``last_updated`` are
rewritten on every matching analysis. An email that already belongs to a
record is never used to create another one, even if the classifier names a
different company on a later pass, so record ids stay unique.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

from .models import (
    AnalysisResult,
    ApplicationRecord,
    EmailSummary,
    JobStatus,
    RecruiterContact,
    RecruiterInfo,
)

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """What reconciling a single analysis did to the collection."""

    IGNORED = "ignored"
    DROPPED = "dropped"
    CREATED = "created"
    UPDATED = "updated"


class CompanyMatcher(Protocol):
    def matches(self, stored: str, candidate: str) -> bool: ...


class SubstringMatcher:
    """Case-insensitive containment in either direction.

    Tolerates "Acme" vs "Acme Corp" vs "Acme, Inc.", at the cost of false
    positives on short names ("Meta" matches "MetaSoft").
    """

    def matches(self, stored: str, candidate: str) -> bool:
        stored = stored.lower()
        candidate = candidate.lower()
        return candidate in stored or stored in candidate


class ExactMatcher:
    """Case-insensitive equality after trimming whitespace."""

    def matches(self, stored: str, candidate: str) -> bool:
        return stored.strip().casefold() == candidate.strip().casefold()


class StatusPolicy(Protocol):
    def resolve(self, current: JobStatus, incoming: JobStatus) -> JobStatus: ...


class MostRecentWins:
    """The latest processed signal replaces the current status."""

    def resolve(self, current: JobStatus, incoming: JobStatus) -> JobStatus:
        return incoming


STATUS_RANK = {
    JobStatus.APPLIED: 0,
    JobStatus.OA_RECEIVED: 1,
    JobStatus.INTERVIEWING: 2,
    JobStatus.REJECTED: 3,
    JobStatus.OFFER: 4,
}


class HighestRankWins:
    """Status only moves forward through the hiring funnel."""

    def resolve(self, current: JobStatus, incoming: JobStatus) -> JobStatus:
        if STATUS_RANK.get(incoming, -1) >= STATUS_RANK.get(current, -1):
            return incoming
        return current


MATCHERS = {
    "substring": SubstringMatcher,
    "exact": ExactMatcher,
}

STATUS_POLICIES = {
    "most_recent": MostRecentWins,
    "highest_rank": HighestRankWins,
}


def get_matcher(name: str) -> CompanyMatcher:
    """Look up a company matcher by its config name."""
    try:
        return MATCHERS[name]()
    except KeyError:
        raise ValueError(f"Unknown company matcher: {name!r}") from None


def get_status_policy(name: str) -> StatusPolicy:
    """Look up a status policy by its config name."""
    try:
        return STATUS_POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown status policy: {name!r}") from None


def find_match(
    records: list[ApplicationRecord],
    company: str,
    matcher: Optional[CompanyMatcher] = None,
) -> Optional[ApplicationRecord]:
    """Return the first record, in insertion order, whose company matches."""
    matcher = matcher or SubstringMatcher()
    for record in records:
        if matcher.matches(record.company, company):
            return record
    return None


def find_by_email(records: list[ApplicationRecord], email_id: str) -> Optional[ApplicationRecord]:
    """Return the record that was created by or already holds ``email_id``."""
    for record in records:
        if record.id == email_id or record.has_email(email_id):
            return record
    return None


def build_contact(recruiter: RecruiterInfo, company: str, now: datetime) -> RecruiterContact:
    """Stamp a recruiter as a contact of ``company`` at time ``now``."""
    return RecruiterContact(
        name=recruiter.name,
        email=recruiter.email,
        role=recruiter.role,
        linkedin=recruiter.linkedin,
        company=company,
        last_contact_date=now,
    )


def merge_into(
    record: ApplicationRecord,
    analysis: AnalysisResult,
    email: EmailSummary,
    now: datetime,
    policy: Optional[StatusPolicy] = None,
) -> None:
    """Apply an analysis to a matched record."""
    policy = policy or MostRecentWins()

    if analysis.status_update != JobStatus.UNKNOWN:
        record.status = policy.resolve(record.status, analysis.status_update)

    if not record.has_email(email.id):
        record.emails.append(email)

    recruiter = analysis.recruiter
    if recruiter is not None and not record.has_contact(recruiter.email):
        record.contacts.append(build_contact(recruiter, analysis.company, now))

    record.last_updated = now


def create_record(
    analysis: AnalysisResult, email: EmailSummary, now: datetime
) -> ApplicationRecord:
    """Start a new record from the email that first mentions a company."""
    status = analysis.status_update
    if status == JobStatus.UNKNOWN:
        status = JobStatus.APPLIED

    contacts = []
    if analysis.recruiter is not None:
        contacts.append(build_contact(analysis.recruiter, analysis.company, now))

    return ApplicationRecord(
        id=email.id,
        company=analysis.company,
        status=status,
        last_updated=now,
        emails=[email],
        contacts=contacts,
    )


def reconcile(
    records: list[ApplicationRecord],
    analysis: AnalysisResult,
    email: EmailSummary,
    now: datetime,
    matcher: Optional[CompanyMatcher] = None,
    policy: Optional[StatusPolicy] = None,
) -> Outcome:
    """Fold one analysis into ``records`` in place."""
    if not analysis.is_job_related:
        return Outcome.IGNORED

    company = analysis.company.strip()
    if not company:
        logger.warning(f"Dropping job-related analysis with no company (email {email.id})")
        return Outcome.DROPPED

    record = find_match(records, company, matcher)
    if record is not None:
        merge_into(record, analysis, email, now, policy)
        logger.info(f"Updated {record.company}: status={record.status.value}")
        return Outcome.UPDATED

    record = find_by_email(records, email.id)
    if record is not None:
        logger.warning(
            f"Email {email.id} already belongs to {record.company}, "
            f"ignoring new company name {company!r}"
        )
        merge_into(record, analysis, email, now, policy)
        return Outcome.UPDATED

    record = create_record(analysis, email, now)
    records.append(record)
    logger.info(f"Created {record.company}: status={record.status.value}")
    return Outcome.CREATED
