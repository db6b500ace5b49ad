from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from runsync.core.enums import UserRole
from runsync.core.security import get_password_hash
from runsync.database import Base, engine, session_scope
from runsync.models.activity import Activity
from runsync.models.user import User
from runsync.schemas.activity import ActivityCreate, DeviceHealthRef, FitnessNetworkRef
from runsync.services.activity_store import add_activity


def ensure_user(
    db: Session,
    *,
    name: str,
    email: str,
    role: UserRole,
    password: str,
) -> User:
    user = db.query(User).filter_by(email=email).first()
    if user:
        return user
    user = User(
        name=name,
        email=email,
        role=role,
        password_hash=get_password_hash(password),
    )
    db.add(user)
    db.flush()
    return user


def ensure_duplicate_pair(db: Session, *, athlete: User) -> None:
    """One morning run recorded by the device and again by the fitness network."""
    if db.query(Activity).filter(Activity.user_id == athlete.id).first():
        return

    start = datetime.now(timezone.utc).replace(hour=7, minute=0, second=0, microsecond=0) - timedelta(days=1)
    add_activity(
        db,
        athlete.id,
        ActivityCreate(
            origin=DeviceHealthRef(external_id="5C1E7F0A-2B9D-4A63-9E0D-3F1B7C2A8D41"),
            start_date=start,
            end_date=start + timedelta(minutes=28),
            duration=28,
            distance=5000,
            calories=320,
            workout_name="Morning Run",
        ),
    )
    add_activity(
        db,
        athlete.id,
        ActivityCreate(
            origin=FitnessNetworkRef(external_id=11223344556),
            start_date=start + timedelta(minutes=3),
            end_date=start + timedelta(minutes=31),
            duration=28,
            distance=5020,
            average_heart_rate=151,
            workout_name="Morning Run",
        ),
    )
    # A separate, longer run the same evening that must not be paired.
    evening = start + timedelta(hours=11)
    add_activity(
        db,
        athlete.id,
        ActivityCreate(
            origin=FitnessNetworkRef(external_id=11223344999),
            start_date=evening,
            end_date=evening + timedelta(minutes=45),
            duration=45,
            distance=8000,
        ),
    )


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        athlete = ensure_user(
            db,
            name="Athlete Demo",
            email="athlete@example.com",
            role=UserRole.ATHLETE,
            password="secret123",
        )
        ensure_user(
            db,
            name="Admin Demo",
            email="admin@example.com",
            role=UserRole.ADMIN,
            password="secret123",
        )
        ensure_duplicate_pair(db, athlete=athlete)
    print("Seed data ready. Users: athlete@example.com / admin@example.com (pass: secret123)")


if __name__ == "__main__":
    main()
