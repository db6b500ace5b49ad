from datetime import datetime

from pydantic import BaseModel, Field

from ..core.enums import ActivitySource


class DuplicateSide(BaseModel):
    id: int
    external_id: str | int
    start_date: datetime
    distance: float
    duration: float
    source: ActivitySource


class DuplicatePairRead(BaseModel):
    device_health: DuplicateSide
    fitness_network: DuplicateSide
    similarity: float = Field(ge=0, le=100)


class ResolutionDirective(BaseModel):
    device_health_id: str = Field(min_length=1)
    fitness_network_id: int
    keep_source: ActivitySource


class ResolveDuplicatesRequest(BaseModel):
    duplicates: list[ResolutionDirective]


class ResolutionSummary(BaseModel):
    resolved: int = 0
    errors: int = 0


class BackfillResult(BaseModel):
    migrated_count: int
    total_activities: int


class CleanupResult(BaseModel):
    cleaned_count: int
    total_activities: int


class DedupRequest(BaseModel):
    keep_source: ActivitySource | None = None


class DedupResult(BaseModel):
    duplicates_removed: int
    kept_source: ActivitySource
    total_activities: int


class MigrationStatus(BaseModel):
    total_activities: int
    untagged: int
    inconsistent: int
    needs_migration: bool
