from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..models.db.database import get_db
from ..services import application_tracker as application_service
from ..services.analytics import compute_analytics
from .auth import get_current_active_user

router = APIRouter()


@router.get("", response_model=schemas.AnalyticsSummary)
def read_analytics(
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """
    Counts per status, interview and offer rates, and the monthly and job type
    histograms for the current user's applications.
    """
    return compute_analytics(application_service.list_applications(db, user_id=current_user.id))
