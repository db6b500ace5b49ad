from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.enums import ActivitySource
from ..database import Base
from ..schemas.activity import ActivityRecord, ActivityRef, DeviceHealthRef, FitnessNetworkRef


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        UniqueConstraint("user_id", "device_health_uuid", name="activities_user_device_health_unique"),
        UniqueConstraint("user_id", "fitness_network_id", name="activities_user_fitness_network_unique"),
        Index("ix_activities_user_id_start_date", "user_id", "start_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration: Mapped[float] = mapped_column(Float, nullable=False)
    distance: Mapped[float] = mapped_column(Float, nullable=False)
    calories: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    average_heart_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    workout_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    # Nullable only for rows written before sources were tracked.
    source: Mapped[Optional[ActivitySource]] = mapped_column(
        Enum(
            ActivitySource,
            native_enum=False,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=True,
    )
    device_health_uuid: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    fitness_network_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="activities")  # noqa: F821

    @property
    def external_id(self) -> str | int | None:
        if self.source == ActivitySource.DEVICE_HEALTH:
            return self.device_health_uuid
        if self.source == ActivitySource.FITNESS_NETWORK:
            return self.fitness_network_id
        return None

    @property
    def origin(self) -> ActivityRef | None:
        """The source tag and matching external id, or None for untagged or inconsistent rows."""
        if self.source == ActivitySource.DEVICE_HEALTH:
            if self.device_health_uuid and self.fitness_network_id is None:
                return DeviceHealthRef(external_id=self.device_health_uuid)
        elif self.source == ActivitySource.FITNESS_NETWORK:
            if self.fitness_network_id is not None and not self.device_health_uuid:
                return FitnessNetworkRef(external_id=self.fitness_network_id)
        return None

    def to_record(self) -> ActivityRecord | None:
        origin = self.origin
        if origin is None:
            return None
        return ActivityRecord(
            id=self.id,
            user_id=self.user_id,
            start_date=_as_utc(self.start_date),
            distance=self.distance,
            duration=self.duration,
            origin=origin,
        )
