"""
Aggregates for the analytics view: status counts, conversion rates, and the
monthly and job-type histograms fed to the charts.
"""
import calendar
from collections import Counter
from typing import Dict, List, Sequence, Tuple

from .. import schemas


def percentage(part: int, total: int) -> str:
    """``part / total`` as a percentage with one decimal ("30.0"); "0.0" when empty."""
    if total == 0:
        return "0.0"
    return f"{part / total * 100:.1f}"


def monthly_counts(applications: Sequence[schemas.JobApplication]) -> List[schemas.MonthlyCount]:
    """
    Count applications per (year, month) of ``appliedDate``.

    Groups appear in first-seen order, so a collection sorted newest first
    yields newest month first.
    """
    counts: Dict[Tuple[int, int], int] = {}
    for application in applications:
        key = (application.applied_date.year, application.applied_date.month)
        counts[key] = counts.get(key, 0) + 1

    return [
        schemas.MonthlyCount(
            month=month,
            year=year,
            label=f"{calendar.month_abbr[month]} {year}",
            count=count,
        )
        for (year, month), count in counts.items()
    ]


def compute_analytics(applications: Sequence[schemas.JobApplication]) -> schemas.AnalyticsSummary:
    total = len(applications)

    by_status = Counter(application.status for application in applications)
    status_counts = {status.value: by_status.get(status, 0) for status in schemas.ApplicationStatus}

    by_job_type = Counter(application.job_type for application in applications if application.job_type)
    job_types = {job_type.value: by_job_type.get(job_type, 0) for job_type in schemas.JobType}

    status_chart = [
        schemas.ChartPoint(name=schemas.STATUS_LABELS[status], value=status_counts[status.value])
        for status in schemas.ApplicationStatus
        if status_counts[status.value] > 0
    ]
    job_type_chart = [
        schemas.ChartPoint(name=schemas.JOB_TYPE_LABELS[job_type], value=job_types[job_type.value])
        for job_type in schemas.JobType
        if job_types[job_type.value] > 0
    ]

    return schemas.AnalyticsSummary(
        total=total,
        status_counts=status_counts,
        interview_rate=percentage(status_counts[schemas.ApplicationStatus.INTERVIEW.value], total),
        offer_rate=percentage(status_counts[schemas.ApplicationStatus.OFFERED.value], total),
        monthly=monthly_counts(applications),
        job_types=job_types,
        status_chart=status_chart,
        job_type_chart=job_type_chart,
    )
