"""Display aggregates over the application records."""

from .models import ApplicationRecord, JobStatus, Stats


def compute_stats(records: list[ApplicationRecord]) -> Stats:
    """Count applications, interviews and offers, and the response rate.

    The response rate is the share of records that have moved past Applied,
    as a whole percentage rounded half up; 0 for an empty collection.
    """
    total = len(records)
    interviews = sum(1 for r in records if r.status == JobStatus.INTERVIEWING)
    offers = sum(1 for r in records if r.status == JobStatus.OFFER)
    responded = sum(1 for r in records if r.status != JobStatus.APPLIED)

    response_rate = (200 * responded + total) // (2 * total) if total else 0

    return Stats(
        total_applied=total,
        interviews=interviews,
        offers=offers,
        response_rate=response_rate,
    )
