from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.enums import UserRole
from ..database import get_db
from ..dependencies import require_role
from ..models.user import User
from ..schemas.reconciliation import (
    BackfillResult,
    CleanupResult,
    DedupRequest,
    DedupResult,
    MigrationStatus,
)
from ..services.duplicates import MatchRules
from ..services.migrations import (
    automated_dedup,
    backfill_source,
    cleanup_consistency,
    migration_status,
)

router = APIRouter(prefix="/admin/migrations", tags=["migrations"])


@router.get("/status", response_model=MigrationStatus)
def read_status(
    _: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> MigrationStatus:
    return migration_status(db)


@router.post("/backfill-source", response_model=BackfillResult)
def run_backfill_source(
    _: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> BackfillResult:
    return backfill_source(db)


@router.post("/cleanup-consistency", response_model=CleanupResult)
def run_cleanup_consistency(
    _: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
) -> CleanupResult:
    return cleanup_consistency(db)


@router.post("/dedup", response_model=DedupResult)
def run_automated_dedup(
    payload: DedupRequest | None = None,
    _: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DedupResult:
    keep_source = payload.keep_source if payload and payload.keep_source else settings.default_keep_source
    return automated_dedup(db, keep_source, MatchRules.from_settings(settings))
