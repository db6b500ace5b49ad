import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from ..core.enums import ActivitySource
from ..schemas.activity import DeviceHealthRef, FitnessNetworkRef
from ..schemas.reconciliation import ResolutionDirective, ResolutionSummary
from .activity_store import ActivityNotFoundError, delete_activity, get_by_ref

logger = logging.getLogger(__name__)


def resolve_duplicates(
    db: Session,
    user_id: int,
    directives: Iterable[ResolutionDirective],
) -> ResolutionSummary:
    """Delete the losing side of each confirmed pair.

    Directives are applied one at a time and committed individually. A pair
    that cannot be resolved (missing, already deleted, owned by someone else,
    or failing for any other reason) counts as an error and the batch moves on.
    """
    summary = ResolutionSummary()
    for directive in directives:
        try:
            device_health = get_by_ref(
                db, user_id, DeviceHealthRef(external_id=directive.device_health_id)
            )
            fitness_network = get_by_ref(
                db, user_id, FitnessNetworkRef(external_id=directive.fitness_network_id)
            )
            if directive.keep_source == ActivitySource.DEVICE_HEALTH:
                losing = fitness_network
            else:
                losing = device_health
            losing_id = losing.id
            delete_activity(db, losing)
            db.commit()
        except ActivityNotFoundError as exc:
            db.rollback()
            logger.warning("Could not resolve duplicate for user %s: %s", user_id, exc)
            summary.errors += 1
            continue
        except Exception:
            db.rollback()
            logger.exception(
                "Failed to resolve %s / %s for user %s",
                directive.device_health_id,
                directive.fitness_network_id,
                user_id,
            )
            summary.errors += 1
            continue
        logger.info(
            "Resolved duplicate for user %s keeping %s (removed activity %s)",
            user_id,
            directive.keep_source.value,
            losing_id,
        )
        summary.resolved += 1
    return summary
