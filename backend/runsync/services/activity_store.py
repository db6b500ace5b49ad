"""Persistence helpers for the activity timeline.

Every per-user read goes through ``user_id`` so a caller can never reach
another user's records. Deletion lives here too, but only the duplicate
resolution and migration services call it.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.enums import ActivitySource
from ..models.activity import Activity
from ..schemas.activity import ActivityCreate, ActivityRef


class ActivityNotFoundError(LookupError):
    """Raised when an activity does not exist for the requesting user."""


def add_activity(db: Session, user_id: int, payload: ActivityCreate) -> Activity:
    activity = Activity(
        user_id=user_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        duration=payload.duration,
        distance=payload.distance,
        calories=payload.calories,
        average_heart_rate=payload.average_heart_rate,
        workout_name=payload.workout_name,
        source=payload.origin.source,
    )
    if payload.origin.source == ActivitySource.DEVICE_HEALTH:
        activity.device_health_uuid = payload.origin.external_id
    else:
        activity.fitness_network_id = payload.origin.external_id
    db.add(activity)
    db.flush()
    return activity


def get_activity(db: Session, user_id: int, activity_id: int) -> Activity:
    activity = db.get(Activity, activity_id)
    if activity is None or activity.user_id != user_id:
        raise ActivityNotFoundError(f"Activity {activity_id} not found.")
    return activity


def get_by_ref(db: Session, user_id: int, ref: ActivityRef) -> Activity:
    query = select(Activity).where(Activity.user_id == user_id, Activity.source == ref.source)
    if ref.source == ActivitySource.DEVICE_HEALTH:
        query = query.where(Activity.device_health_uuid == ref.external_id)
    else:
        query = query.where(Activity.fitness_network_id == ref.external_id)
    activity = db.scalars(query).first()
    if activity is None:
        raise ActivityNotFoundError(f"{ref.source.value} activity {ref.external_id} not found.")
    return activity


def list_user_activities(
    db: Session,
    user_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Activity]:
    query = select(Activity).where(Activity.user_id == user_id)
    if start:
        query = query.where(Activity.start_date >= start)
    if end:
        query = query.where(Activity.start_date <= end)
    return list(db.scalars(query.order_by(Activity.start_date, Activity.id)))


def list_all_activities(db: Session) -> list[Activity]:
    return list(db.scalars(select(Activity).order_by(Activity.user_id, Activity.start_date, Activity.id)))


def delete_activity(db: Session, activity: Activity) -> None:
    db.delete(activity)
    db.flush()
