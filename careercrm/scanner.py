"""Scan cycle orchestration: list, fetch, classify, reconcile, commit."""

import logging
import time
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Protocol

from pydantic import BaseModel, Field

from .classifier import GeminiClassifier
from .config import Config
from .errors import ListingError, ScanInProgressError
from .models import AnalysisResult, ApplicationRecord, EmailSummary
from .reconcile import (
    CompanyMatcher,
    Outcome,
    StatusPolicy,
    get_matcher,
    get_status_policy,
    reconcile,
)
from .store import RecordStore

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000


class EmailSource(Protocol):
    def list_since(self, since_ms: int) -> list[str]: ...

    def fetch_details(self, message_id: str) -> Optional[EmailSummary]: ...


class Classifier(Protocol):
    @property
    def has_credential(self) -> bool: ...

    def analyze(self, subject: str, body: str) -> AnalysisResult: ...


class ScanStatus(str, Enum):
    COMPLETED = "completed"
    UP_TO_DATE = "up_to_date"
    CONFIG_ERROR = "config_error"
    LISTING_FAILED = "listing_failed"


class ScanResult(BaseModel):
    """Outcome of one scan cycle."""

    status: ScanStatus
    records: list[ApplicationRecord]
    watermark: int
    message: str
    candidates: int = 0
    fetch_failures: int = 0
    analyzed: int = 0
    created: int = 0
    updated: int = 0
    dropped: int = 0
    ignored: int = 0
    outcomes: dict[str, str] = Field(default_factory=dict)

    @property
    def committed(self) -> bool:
        return self.status in (ScanStatus.COMPLETED, ScanStatus.UP_TO_DATE)


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def should_auto_scan(watermark: int, now: int, hours: int = 24) -> bool:
    """True when the last committed scan is older than the auto-scan interval."""
    return now - watermark > hours * HOUR_MS


class ScanCycle:
    """Runs scan cycles against an email source and a classifier.

    Only one cycle may run at a time per instance; the working copy of the
    records is private to the cycle until it returns.
    """

    def __init__(
        self,
        config: Config,
        source: EmailSource,
        classifier: Optional[Classifier] = None,
        matcher: Optional[CompanyMatcher] = None,
        policy: Optional[StatusPolicy] = None,
        clock: Callable[[], int] = now_ms,
        on_progress: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.source = source
        self.classifier = classifier or GeminiClassifier(config)
        self.matcher = matcher or get_matcher(config.matcher)
        self.policy = policy or get_status_policy(config.status_policy)
        self.clock = clock
        self.on_progress = on_progress
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def _progress(self, text: str) -> None:
        logger.info(text)
        if self.on_progress is not None:
            self.on_progress(text)

    def _analyze(self, email: EmailSummary) -> AnalysisResult:
        try:
            return self.classifier.analyze(email.subject, email.body)
        except Exception as e:
            logger.warning(f"Classifier failed for email {email.id}: {e}")
            return AnalysisResult.not_job_related()

    def run_scan(self, records: list[ApplicationRecord], watermark: int) -> ScanResult:
        """Fold new emails since ``watermark`` into a copy of ``records``."""
        if self._in_progress:
            raise ScanInProgressError("A scan is already running")

        self._in_progress = True
        try:
            return self._run(records, watermark)
        finally:
            self._in_progress = False

    def _run(self, records: list[ApplicationRecord], watermark: int) -> ScanResult:
        if not self.classifier.has_credential:
            message = "Please set your Gemini API key in settings first."
            logger.error(message)
            return ScanResult(
                status=ScanStatus.CONFIG_ERROR,
                records=records,
                watermark=watermark,
                message=message,
            )

        self._progress("Fetching emails...")
        try:
            candidates = self.source.list_since(watermark)
        except ListingError as e:
            logger.error(str(e))
            self._progress("Error during scan.")
            return ScanResult(
                status=ScanStatus.LISTING_FAILED,
                records=records,
                watermark=watermark,
                message=f"Error during scan: {e}",
            )

        if not candidates:
            message = "Up to date. No new emails found."
            self._progress(message)
            return ScanResult(
                status=ScanStatus.UP_TO_DATE,
                records=records,
                watermark=max(watermark, self.clock()),
                message=message,
            )

        self._progress(f"Found {len(candidates)} potential updates. Analyzing...")

        working = [r.model_copy(deep=True) for r in records]
        counts: Counter = Counter()
        outcomes: dict[str, str] = {}

        for message_id in candidates:
            email = self.source.fetch_details(message_id)
            if email is None:
                counts["fetch_failures"] += 1
                continue

            self._progress(f"Analyzing: {email.subject[:30]}...")
            analysis = self._analyze(email)
            counts["analyzed"] += 1

            now = datetime.fromtimestamp(self.clock() / 1000, tz=timezone.utc)
            outcome = reconcile(working, analysis, email, now, self.matcher, self.policy)
            outcomes[message_id] = outcome.value
            counts[outcome.value] += 1

        result = ScanResult(
            status=ScanStatus.COMPLETED,
            records=working,
            watermark=max(watermark, self.clock()),
            message="Sync complete.",
            candidates=len(candidates),
            fetch_failures=counts["fetch_failures"],
            analyzed=counts["analyzed"],
            created=counts[Outcome.CREATED.value],
            updated=counts[Outcome.UPDATED.value],
            dropped=counts[Outcome.DROPPED.value],
            ignored=counts[Outcome.IGNORED.value],
            outcomes=outcomes,
        )
        self._progress(result.message)
        logger.info(
            f"Scan complete: {result.candidates} candidates, "
            f"{result.fetch_failures} fetch failures, "
            f"{result.created} created, {result.updated} updated, "
            f"{result.dropped} dropped, {result.ignored} ignored"
        )
        return result

    def sync(self, store: RecordStore) -> ScanResult:
        """Run one cycle against the store and commit its output."""
        records = store.load()
        watermark = store.load_watermark()

        result = self.run_scan(records, watermark)

        if result.status == ScanStatus.COMPLETED:
            store.commit(result.records, result.watermark)
        elif result.status == ScanStatus.UP_TO_DATE:
            store.save_watermark(result.watermark)
        return result
