from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import pytest

from careercrm.config import Config
from careercrm.errors import ListingError
from careercrm.models import AnalysisResult, EmailSummary, JobStatus, RecruiterInfo

T0 = 1_700_000_000_000


def make_email(email_id: str, subject: str = "Your application", body: str = "") -> EmailSummary:
    return EmailSummary(
        id=email_id,
        subject=subject,
        snippet=body[:40],
        sender="Talent Team <talent@example.com>",
        date=datetime(2024, 5, 1, tzinfo=timezone.utc),
        body=body or subject,
    )


def make_analysis(
    company: str,
    status: JobStatus = JobStatus.APPLIED,
    related: bool = True,
    recruiter_email: Optional[str] = None,
) -> AnalysisResult:
    recruiter = None
    if recruiter_email:
        recruiter = RecruiterInfo(name="Pat Recruiter", email=recruiter_email, role="Recruiter")
    return AnalysisResult(
        is_job_related=related,
        company=company,
        status_update=status,
        recruiter=recruiter,
    )


class FakeSource:
    """In-memory email source; ``fail_listing`` simulates an unreachable inbox."""

    def __init__(self, emails: list[EmailSummary] | None = None, fail_listing: bool = False):
        self.emails = {e.id: e for e in emails or []}
        self.order = [e.id for e in emails or []]
        self.fail_listing = fail_listing
        self.missing: set[str] = set()
        self.listed_since: list[int] = []

    def list_since(self, since_ms: int) -> list[str]:
        self.listed_since.append(since_ms)
        if self.fail_listing:
            raise ListingError("inbox unreachable")
        return list(self.order)

    def fetch_details(self, message_id: str) -> Optional[EmailSummary]:
        if message_id in self.missing:
            return None
        return self.emails.get(message_id)


class FakeClassifier:
    """Returns canned analyses keyed by subject."""

    def __init__(self, analyses: dict[str, AnalysisResult] | None = None, has_credential: bool = True):
        self.analyses = analyses or {}
        self.has_credential = has_credential
        self.raise_for: set[str] = set()
        self.calls: list[str] = []

    def analyze(self, subject: str, body: str) -> AnalysisResult:
        self.calls.append(subject)
        if subject in self.raise_for:
            raise RuntimeError("model exploded")
        return self.analyses.get(subject, AnalysisResult.not_job_related())


class FakeClock:
    def __init__(self, start: int = T0):
        self.value = start

    def __call__(self) -> int:
        return self.value


@pytest.fixture
def config() -> Config:
    return Config(gemini_api_key="test-key-0123456789")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def now() -> datetime:
    return datetime.fromtimestamp(T0 / 1000, tz=timezone.utc)
