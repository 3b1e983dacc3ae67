"""Plain-text status board and recruiter list."""

from .models import ApplicationRecord, JobStatus, RecruiterContact
from .stats import compute_stats

BOARD_COLUMNS = [
    JobStatus.APPLIED,
    JobStatus.OA_RECEIVED,
    JobStatus.INTERVIEWING,
    JobStatus.OFFER,
    JobStatus.REJECTED,
]


def group_by_status(records: list[ApplicationRecord]) -> dict[JobStatus, list[ApplicationRecord]]:
    """Bucket records into board columns, keeping collection order within each."""
    columns: dict[JobStatus, list[ApplicationRecord]] = {status: [] for status in BOARD_COLUMNS}
    for record in records:
        if record.status in columns:
            columns[record.status].append(record)
    return columns


def all_contacts(records: list[ApplicationRecord]) -> list[RecruiterContact]:
    """Flatten the contacts of every record, in record order."""
    return [contact for record in records for contact in record.contacts]


def render_stats(records: list[ApplicationRecord]) -> str:
    """One-line summary of the dashboard metrics."""
    stats = compute_stats(records)
    return (
        f"Total applications: {stats.total_applied}  "
        f"Response rate: {stats.response_rate}%  "
        f"Active interviews: {stats.interviews}  "
        f"Offers: {stats.offers}"
    )


def render_board(records: list[ApplicationRecord]) -> str:
    """Render the stats line followed by one section per status column."""
    lines = [render_stats(records), ""]

    for status, column in group_by_status(records).items():
        lines.append(f"== {status.value.upper()} ({len(column)}) ==")
        if not column:
            lines.append("  No applications")
        for record in column:
            latest = record.emails[-1].subject if record.emails else ""
            lines.append(
                f"  {record.company:<30} {record.last_updated:%Y-%m-%d}  "
                f"{len(record.emails)} email(s)  {latest[:50]}"
            )
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def render_contacts(records: list[ApplicationRecord]) -> str:
    """Render one line per recruiter contact."""
    contacts = all_contacts(records)
    if not contacts:
        return "No recruiter contacts yet.\n"

    lines = []
    for contact in contacts:
        line = f"{contact.name or '(unnamed)':<25} {contact.email:<35} {contact.role:<25} {contact.company}"
        if contact.linkedin:
            line += f"  {contact.linkedin}"
        lines.append(line.rstrip())
    return "\n".join(lines) + "\n"
