"""Data models for job application tracking."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class JobStatus(str, Enum):
    """Status of a tracked application, as shown on the board."""

    APPLIED = "Applied"
    OA_RECEIVED = "OA / Skill Test"
    INTERVIEWING = "Interviewing"
    OFFER = "Offer"
    REJECTED = "Rejected"
    UNKNOWN = "Unknown"

    @classmethod
    def coerce(cls, value: Any) -> "JobStatus":
        """Map a value or member name to a status, falling back to Unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN

        key = value.strip().lower()
        for status in cls:
            if key in (status.value.lower(), status.name.lower()):
                return status
        return cls.UNKNOWN


class EmailSummary(BaseModel):
    """Snapshot of a processed email."""

    model_config = ConfigDict(frozen=True)

    id: str
    subject: str
    snippet: str = ""
    sender: str = ""
    date: datetime
    body: str = ""


class RecruiterInfo(BaseModel):
    """Recruiter details as reported by the classifier."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    email: str = ""
    role: str = ""
    linkedin: Optional[str] = Field(default=None, alias="linkedIn")

    @field_validator("name", "email", "role", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class RecruiterContact(BaseModel):
    """A recruiter attached to an application."""

    name: str = ""
    email: str = ""
    role: str = ""
    linkedin: Optional[str] = None
    company: str
    last_contact_date: datetime


class ApplicationRecord(BaseModel):
    """One tracked job application, aggregated from its emails."""

    id: str
    company: str
    role: Optional[str] = None
    status: JobStatus
    last_updated: datetime
    emails: list[EmailSummary] = Field(default_factory=list)
    contacts: list[RecruiterContact] = Field(default_factory=list)
    notes: Optional[str] = None

    def has_email(self, email_id: str) -> bool:
        """True if the email with this id is already in the history."""
        return any(e.id == email_id for e in self.emails)

    def has_contact(self, address: str) -> bool:
        """True if a contact with this email address exists, ignoring case."""
        address = address.lower()
        return any(c.email.lower() == address for c in self.contacts)


class AnalysisResult(BaseModel):
    """Classifier judgment about a single email. Never persisted."""

    model_config = ConfigDict(populate_by_name=True)

    is_job_related: bool = Field(default=False, alias="isJobRelated")
    company: str = ""
    status_update: JobStatus = Field(default=JobStatus.UNKNOWN, alias="statusUpdate")
    recruiter: Optional[RecruiterInfo] = None

    @field_validator("company", mode="before")
    @classmethod
    def _none_company(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("status_update", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> JobStatus:
        return JobStatus.coerce(value)

    @model_validator(mode="after")
    def _drop_empty_recruiter(self) -> "AnalysisResult":
        # The model sometimes returns a recruiter object with every field blank
        if self.recruiter is not None and not (
            self.recruiter.name.strip() or self.recruiter.email.strip()
        ):
            self.recruiter = None
        return self

    @classmethod
    def not_job_related(cls) -> "AnalysisResult":
        """Sentinel returned when classification is unavailable or fails."""
        return cls(is_job_related=False, company="", status_update=JobStatus.UNKNOWN)


class Stats(BaseModel):
    """Display aggregates over the record collection."""

    total_applied: int
    interviews: int
    offers: int
    response_rate: int
