from datetime import date, datetime, time, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_current_user
from ..models.activity import Activity
from ..models.user import User
from ..schemas.activity import ActivityRead
from ..services.activity_store import ActivityNotFoundError, get_activity, list_user_activities

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("/me", response_model=list[ActivityRead])
def list_my_activities(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> list[Activity]:
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date.",
        )
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc) if end_date else None
    return list_user_activities(db, current_user.id, start=start, end=end)


@router.get("/{activity_id}", response_model=ActivityRead)
def read_activity(
    activity_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Activity:
    try:
        return get_activity(db, current_user.id, activity_id)
    except ActivityNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found.")
