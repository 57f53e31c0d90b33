from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..config.settings import get_settings
from ..services import application_tracker as application_service
from ..services import application_editor as editor
from ..services.application_filter import filter_applications
from ..models.db.database import get_db
from ..utils.api_helpers import handle_service_error, validate_filter_value
from .auth import get_current_active_user

router = APIRouter()
settings = get_settings()


@router.post("/", response_model=schemas.JobApplication, status_code=status.HTTP_201_CREATED)
def create_application(
    application: schemas.ApplicationCreate,
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """
    Add a job application for the current user. ``id``, ``userId`` and
    ``createdAt`` are assigned by the store.
    """
    return application_service.create_application_for_user(
        db=db, application=application, user_id=current_user.id
    )


@router.get("/", response_model=List[schemas.JobApplication])
def read_applications(
    q: str = Query("", description="Case-insensitive search over company, position and notes"),
    status_filter: Optional[str] = Query(schemas.ALL_FILTER, alias="status"),
    job_type: Optional[str] = Query(schemas.ALL_FILTER, alias="job_type"),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """
    The list view: the user's applications, newest first, narrowed by the
    search text and the status / job type filters.
    """
    status_value = validate_filter_value(status_filter, schemas.ApplicationStatus, "status")
    job_type_value = validate_filter_value(job_type, schemas.JobType, "job_type")

    applications = application_service.list_applications(db, user_id=current_user.id)
    filtered = filter_applications(applications, q, status_value, job_type_value)
    return filtered[skip:skip + limit]


@router.get("/{application_id}", response_model=schemas.JobApplication)
def read_application(
    application_id: str,
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """The detail view. Unknown or foreign ids are 404."""
    return application_service.get_application(
        db, application_id=application_id, user_id=current_user.id
    )


@router.patch("/{application_id}", response_model=schemas.JobApplication)
@router.put("/{application_id}", response_model=schemas.JobApplication)
def update_application(
    application_id: str,
    application: schemas.ApplicationUpdate,
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """
    Merge the given fields into the application; omitted fields are untouched.
    """
    return application_service.update_application(
        db, application_id=application_id, application_update=application, user_id=current_user.id
    )


@router.delete("/{application_id}", response_model=schemas.JobApplication)
def delete_application(
    application_id: str,
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """
    Delete a job application. Returns the removed record.
    """
    return application_service.delete_application(
        db, application_id=application_id, user_id=current_user.id
    )


def _save_edit(db: Session, before: schemas.JobApplication, after: schemas.JobApplication, field: str, user_id: str):
    if after is before:
        return before
    changes = schemas.ApplicationUpdate(**{field: getattr(after, field)})
    return application_service.update_application(
        db, application_id=before.id, application_update=changes, user_id=user_id
    )


@router.post("/{application_id}/tags", response_model=schemas.JobApplication)
def add_tag(
    application_id: str,
    request: schemas.TagRequest,
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """Add a tag. Blank and duplicate tags are ignored."""
    record = application_service.get_application(db, application_id, current_user.id)
    return _save_edit(db, record, editor.add_tag(record, request.tag), "tags", current_user.id)


@router.delete("/{application_id}/tags/{tag}", response_model=schemas.JobApplication)
def remove_tag(
    application_id: str,
    tag: str,
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    record = application_service.get_application(db, application_id, current_user.id)
    return _save_edit(db, record, editor.remove_tag(record, tag), "tags", current_user.id)


@router.post("/{application_id}/stages", response_model=schemas.JobApplication)
def add_interview_stage(
    application_id: str,
    stage: schemas.InterviewStage,
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """Append an interview stage (stage name and date are required)."""
    record = application_service.get_application(db, application_id, current_user.id)
    try:
        edited = editor.add_interview_stage(record, stage.stage, stage.date, stage.notes)
    except ValueError as e:
        raise handle_service_error(e, "Interview stages")
    return _save_edit(db, record, edited, "interview_stages", current_user.id)


@router.delete("/{application_id}/stages/{index}", response_model=schemas.JobApplication)
def remove_interview_stage(
    application_id: str,
    index: int,
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    record = application_service.get_application(db, application_id, current_user.id)
    try:
        edited = editor.remove_interview_stage(record, index)
    except IndexError as e:
        raise handle_service_error(e, "Interview stages")
    return _save_edit(db, record, edited, "interview_stages", current_user.id)
