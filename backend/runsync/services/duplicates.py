"""Cross-source duplicate detection.

The same run recorded by both sources shows up as two activities that start
within a few minutes of each other, on the same calendar day, with nearly the
same distance. Detection is a pure function over ``ActivityRecord`` snapshots;
it proposes pairs and never mutates the store.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.enums import ActivitySource
from ..schemas.activity import ActivityRecord
from .activity_store import list_user_activities

logger = logging.getLogger(__name__)


class MatchRules(BaseModel):
    window: timedelta = timedelta(minutes=10)
    distance_tolerance: float = 50.0
    calendar_timezone: str = "UTC"
    match_zero_distance: bool = False

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> "MatchRules":
        return cls(
            window=timedelta(minutes=settings.duplicate_window_minutes),
            distance_tolerance=settings.duplicate_distance_meters,
            calendar_timezone=settings.calendar_timezone,
            match_zero_distance=settings.match_zero_distance,
        )

    def calendar_day(self, moment: datetime) -> date:
        return moment.astimezone(ZoneInfo(self.calendar_timezone)).date()


class DuplicatePair(BaseModel):
    device_health: ActivityRecord
    fitness_network: ActivityRecord
    similarity: float

    model_config = {"frozen": True}

    def loser(self, keep_source: ActivitySource) -> ActivityRecord:
        if keep_source == ActivitySource.DEVICE_HEALTH:
            return self.fitness_network
        return self.device_health


def is_duplicate(a: ActivityRecord, b: ActivityRecord, rules: MatchRules) -> bool:
    """Binary classification; order of the arguments never matters."""
    if a.user_id != b.user_id or a.source == b.source:
        return False
    if abs(a.start_date - b.start_date) > rules.window:
        return False
    if rules.calendar_day(a.start_date) != rules.calendar_day(b.start_date):
        return False
    if not rules.match_zero_distance and a.distance == 0 and b.distance == 0:
        return False
    return abs(a.distance - b.distance) <= rules.distance_tolerance


def similarity(a: ActivityRecord, b: ActivityRecord, rules: MatchRules) -> float:
    """Display score in [0, 100]: 100 for identical start and distance, 0 at either threshold.

    Each proximity term falls off with the fourth power of its ratio, so small
    clock skew or GPS drift barely moves the score while values near a
    threshold drop quickly.
    """
    time_ratio = abs(a.start_date - b.start_date) / rules.window if rules.window else 1.0
    if rules.distance_tolerance > 0:
        distance_ratio = abs(a.distance - b.distance) / rules.distance_tolerance
    else:
        distance_ratio = 0.0 if a.distance == b.distance else 1.0
    time_score = max(0.0, 1.0 - min(time_ratio, 1.0) ** 4)
    distance_score = max(0.0, 1.0 - min(distance_ratio, 1.0) ** 4)
    return round(100.0 * time_score * distance_score, 1)


def _make_pair(a: ActivityRecord, b: ActivityRecord, rules: MatchRules) -> DuplicatePair:
    if a.source == ActivitySource.DEVICE_HEALTH:
        device_health, fitness_network = a, b
    else:
        device_health, fitness_network = b, a
    return DuplicatePair(
        device_health=device_health,
        fitness_network=fitness_network,
        similarity=similarity(device_health, fitness_network, rules),
    )


def find_duplicate_pairs(records: Iterable[ActivityRecord], rules: MatchRules) -> list[DuplicatePair]:
    """Scan records chronologically and pair each with its first match.

    A record belongs to at most one pair. The inner scan stops as soon as the
    next start date leaves the window, so cost stays close to linear.
    """
    ordered = sorted(records, key=lambda record: (record.start_date, record.id))
    matched: set[int] = set()
    pairs: list[DuplicatePair] = []
    for index, current in enumerate(ordered):
        if current.id in matched:
            continue
        for candidate in ordered[index + 1 :]:
            if candidate.start_date - current.start_date > rules.window:
                break
            if candidate.id in matched:
                continue
            if is_duplicate(current, candidate, rules):
                pairs.append(_make_pair(current, candidate, rules))
                matched.update((current.id, candidate.id))
                break
    return pairs


def find_duplicate_activities(
    db: Session,
    user_id: int,
    settings: Settings,
    now: datetime | None = None,
) -> list[DuplicatePair]:
    """Candidate pairs in the user's recent timeline, best match first."""
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=settings.duplicate_lookback_days)
    records = []
    skipped = 0
    for activity in list_user_activities(db, user_id, start=since, end=now):
        record = activity.to_record()
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.debug("Skipped %s untagged or inconsistent activities for user %s", skipped, user_id)

    pairs = find_duplicate_pairs(records, MatchRules.from_settings(settings))
    pairs.sort(key=lambda pair: pair.similarity, reverse=True)
    logger.info("Found %s duplicate candidates for user %s", len(pairs), user_id)
    return pairs[: settings.duplicate_result_limit]
