import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.db import application as application_model
from .. import schemas
from ..errors import NotFoundError, StoreWriteError
from .live_feed import ApplicationSubscription, change_feed

logger = logging.getLogger(__name__)


def to_record(db_application: application_model.Application) -> schemas.JobApplication:
    """Map a stored row to the in-memory record shape."""
    return schemas.JobApplication.model_validate(db_application)


def sort_newest_first(applications: List[schemas.JobApplication]) -> List[schemas.JobApplication]:
    return sorted(applications, key=lambda a: a.applied_date, reverse=True)


def _query_for_user(db: Session, user_id: str):
    return db.query(application_model.Application).filter(
        application_model.Application.user_id == user_id
    )


def _get_row(db: Session, application_id: str, user_id: str):
    return _query_for_user(db, user_id).filter(
        application_model.Application.id == application_id
    ).first()


def list_applications(db: Session, user_id: str) -> List[schemas.JobApplication]:
    """The user's full collection, newest ``appliedDate`` first."""
    return sort_newest_first([to_record(row) for row in _query_for_user(db, user_id).all()])


def get_application(db: Session, application_id: str, user_id: str) -> schemas.JobApplication:
    db_application = _get_row(db, application_id, user_id)
    if db_application is None:
        raise NotFoundError("Application not found")
    return to_record(db_application)


def subscribe(db: Session, user_id: str) -> ApplicationSubscription:
    """Live query scoped to ``user_id``; see ``ApplicationSubscription``."""
    def load_snapshot():
        try:
            return list_applications(db, user_id)
        finally:
            # Ends the read transaction: the connection goes back to the pool and
            # the next load sees rows other sessions committed meanwhile
            db.rollback()
    return ApplicationSubscription(user_id, load_snapshot)


def create_application_for_user(db: Session, application: schemas.ApplicationCreate, user_id: str):
    db_application = application_model.Application(
        **application.model_dump(mode="json"), user_id=user_id
    )
    try:
        db.add(db_application)
        db.commit()
        db.refresh(db_application)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to create application for user %s: %s", user_id, e)
        raise StoreWriteError("Could not save the application")

    logger.info("Created application %s for user %s", db_application.id, user_id)
    record = to_record(db_application)
    change_feed.publish(user_id)
    return record


def update_application(db: Session, application_id: str, application_update: schemas.ApplicationUpdate, user_id: str):
    db_application = _get_row(db, application_id, user_id)
    if db_application is None:
        logger.error("Update of missing application %s for user %s", application_id, user_id)
        raise StoreWriteError("Application not found", missing=True)

    # JSON mode: dates as YYYY-MM-DD, enums as their values, stages as plain dicts
    update_data = application_update.model_dump(mode="json", exclude_unset=True)
    try:
        for key, value in update_data.items():
            setattr(db_application, key, value)
        db.commit()
        db.refresh(db_application)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to update application %s: %s", application_id, e)
        raise StoreWriteError("Could not update the application")

    logger.info("Updated application %s fields=%s", application_id, sorted(update_data))
    record = to_record(db_application)
    change_feed.publish(user_id)
    return record


def delete_application(db: Session, application_id: str, user_id: str):
    db_application = _get_row(db, application_id, user_id)
    if db_application is None:
        logger.error("Delete of missing application %s for user %s", application_id, user_id)
        raise StoreWriteError("Application not found", missing=True)

    record = to_record(db_application)
    try:
        db.delete(db_application)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to delete application %s: %s", application_id, e)
        raise StoreWriteError("Could not delete the application")

    logger.info("Deleted application %s", application_id)
    change_feed.publish(user_id)
    return record
