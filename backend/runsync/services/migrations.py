"""Full-table maintenance jobs for the activity store.

Each job is idempotent: running it again after a successful run changes
nothing. They operate across all users and are meant to be triggered by an
operator, either through the admin endpoints or ``scripts/run_reconciliation``.
"""

import logging
from collections import defaultdict

from sqlalchemy.orm import Session

from ..core.enums import ActivitySource
from ..schemas.activity import ActivityRecord
from ..schemas.reconciliation import BackfillResult, CleanupResult, DedupResult, MigrationStatus
from .activity_store import delete_activity, list_all_activities
from .duplicates import MatchRules, find_duplicate_pairs

logger = logging.getLogger(__name__)


# Untagged rows predate the fitness-network integration, so they all came
# from the device.
LEGACY_SOURCE = ActivitySource.DEVICE_HEALTH


def backfill_source(db: Session) -> BackfillResult:
    logger.info("Starting source backfill")
    activities = list_all_activities(db)
    pending = [activity for activity in activities if activity.source is None]
    logger.info("Found %s activities without a source", len(pending))

    for activity in pending:
        activity.source = LEGACY_SOURCE
    db.commit()

    logger.info("Backfilled source on %s of %s activities", len(pending), len(activities))
    return BackfillResult(migrated_count=len(pending), total_activities=len(activities))


def cleanup_consistency(db: Session) -> CleanupResult:
    logger.info("Starting activity consistency cleanup")
    activities = list_all_activities(db)
    cleaned = 0

    for activity in activities:
        changed = False
        if activity.source is None:
            activity.source = LEGACY_SOURCE
            changed = True
        elif activity.source == ActivitySource.FITNESS_NETWORK and activity.fitness_network_id is None:
            logger.warning(
                "Activity %s is tagged %s without a fitness-network id, retagging as %s",
                activity.id,
                ActivitySource.FITNESS_NETWORK.value,
                ActivitySource.DEVICE_HEALTH.value,
            )
            activity.source = ActivitySource.DEVICE_HEALTH
            changed = True

        if activity.device_health_uuid and activity.fitness_network_id is not None:
            logger.warning(
                "Activity %s (user %s) carries both a device-health UUID and a fitness-network id, keeping the %s id",
                activity.id,
                activity.user_id,
                activity.source.value,
            )
            if activity.source == ActivitySource.FITNESS_NETWORK:
                activity.device_health_uuid = None
            else:
                activity.fitness_network_id = None
            changed = True

        if activity.source == ActivitySource.DEVICE_HEALTH and not activity.device_health_uuid:
            logger.warning(
                "Activity %s (user %s) is tagged %s but has no device-health UUID; needs manual review",
                activity.id,
                activity.user_id,
                ActivitySource.DEVICE_HEALTH.value,
            )
        if changed:
            cleaned += 1
    db.commit()

    logger.info("Cleaned up %s of %s activities", cleaned, len(activities))
    return CleanupResult(cleaned_count=cleaned, total_activities=len(activities))


def automated_dedup(
    db: Session,
    keep_source: ActivitySource,
    rules: MatchRules | None = None,
) -> DedupResult:
    """Remove every cross-source duplicate without asking the user.

    Runs in two phases: all deletions are planned first, then applied.
    Planning repeats detection on each user's remaining records until no
    pair is left, so every copy matched by a kept record is removed in a
    single run.
    """
    rules = rules or MatchRules()
    logger.info("Starting automated duplicate removal, keeping %s", keep_source.value)
    activities = list_all_activities(db)
    by_id = {activity.id: activity for activity in activities}

    timelines: dict[int, list[ActivityRecord]] = defaultdict(list)
    for activity in activities:
        record = activity.to_record()
        if record is not None:
            timelines[record.user_id].append(record)

    losing_ids: list[int] = []
    for user_id, records in timelines.items():
        remaining = records
        while True:
            pairs = find_duplicate_pairs(remaining, rules)
            if not pairs:
                break
            round_losers: set[int] = set()
            for pair in pairs:
                losing = pair.loser(keep_source)
                logger.info(
                    "Removing duplicate %s activity %s for user %s (%s, similarity %.1f)",
                    losing.source.value,
                    losing.id,
                    user_id,
                    losing.start_date.isoformat(),
                    pair.similarity,
                )
                round_losers.add(losing.id)
            losing_ids.extend(sorted(round_losers))
            remaining = [record for record in remaining if record.id not in round_losers]

    for activity_id in losing_ids:
        delete_activity(db, by_id[activity_id])
    db.commit()

    logger.info("Removed %s duplicate activities out of %s", len(losing_ids), len(activities))
    return DedupResult(
        duplicates_removed=len(losing_ids),
        kept_source=keep_source,
        total_activities=len(activities),
    )


def migration_status(db: Session) -> MigrationStatus:
    activities = list_all_activities(db)
    untagged = sum(1 for activity in activities if activity.source is None)
    inconsistent = sum(
        1 for activity in activities if activity.source is not None and activity.origin is None
    )
    repairable = sum(
        1
        for activity in activities
        if activity.source == ActivitySource.FITNESS_NETWORK and activity.fitness_network_id is None
    )
    return MigrationStatus(
        total_activities=len(activities),
        untagged=untagged,
        inconsistent=inconsistent,
        needs_migration=bool(untagged or repairable),
    )
