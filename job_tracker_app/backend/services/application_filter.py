from typing import Iterable, List, Optional

from .. import schemas


def _matches_search(application: schemas.JobApplication, needle: str) -> bool:
    if not needle:
        return True
    haystacks = (application.company_name, application.position, application.notes)
    return any(text is not None and needle in text.lower() for text in haystacks)


def _matches_choice(value: Optional[str], wanted: str) -> bool:
    if wanted == schemas.ALL_FILTER:
        return True
    return value is not None and value == wanted


def filter_applications(
    applications: Iterable[schemas.JobApplication],
    search_text: str = "",
    status_filter: str = schemas.ALL_FILTER,
    job_type_filter: str = schemas.ALL_FILTER,
) -> List[schemas.JobApplication]:
    """
    The list view's display subset.

    A record passes when the search text (case-insensitive) occurs in its
    company name, position, or notes, and its status and job type match the
    given filters ("all" matches anything). Input order is preserved.
    """
    needle = (search_text or "").lower()
    status_filter = getattr(status_filter, "value", status_filter)
    job_type_filter = getattr(job_type_filter, "value", job_type_filter)

    return [
        application
        for application in applications
        if _matches_search(application, needle)
        and _matches_choice(application.status.value, status_filter)
        and _matches_choice(application.job_type.value if application.job_type else None, job_type_filter)
    ]
