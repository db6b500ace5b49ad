from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..database import get_db
from ..dependencies import get_current_user
from ..models.user import User
from ..schemas.activity import ActivityRecord
from ..schemas.reconciliation import (
    DuplicatePairRead,
    DuplicateSide,
    ResolutionSummary,
    ResolveDuplicatesRequest,
)
from ..services.duplicates import find_duplicate_activities
from ..services.resolution import resolve_duplicates

router = APIRouter(prefix="/activities/duplicates", tags=["duplicates"])


@router.get("", response_model=list[DuplicatePairRead])
def list_duplicates(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> list[DuplicatePairRead]:
    pairs = find_duplicate_activities(db, current_user.id, settings)
    return [
        DuplicatePairRead(
            device_health=_side(pair.device_health),
            fitness_network=_side(pair.fitness_network),
            similarity=pair.similarity,
        )
        for pair in pairs
    ]


@router.post("/resolve", response_model=ResolutionSummary)
def resolve(
    payload: ResolveDuplicatesRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ResolutionSummary:
    return resolve_duplicates(db, current_user.id, payload.duplicates)


def _side(record: ActivityRecord) -> DuplicateSide:
    return DuplicateSide(
        id=record.id,
        external_id=record.origin.external_id,
        start_date=record.start_date,
        distance=record.distance,
        duration=record.duration,
        source=record.source,
    )
