import logging
from datetime import datetime, timedelta, timezone

from runsync.core.enums import ActivitySource, UserRole
from runsync.models.activity import Activity
from runsync.services.duplicates import MatchRules
from runsync.services.migrations import (
    automated_dedup,
    backfill_source,
    cleanup_consistency,
    migration_status,
)

DH = ActivitySource.DEVICE_HEALTH
FN = ActivitySource.FITNESS_NETWORK
MORNING = datetime(2024, 5, 1, 7, 0, tzinfo=timezone.utc)


def test_backfill_tags_legacy_rows_once(db_session, make_user, make_activity):
    runner = make_user("runner@example.com")
    make_activity(runner, MORNING, 5000, source=None, device_health_uuid="DH-1")
    make_activity(runner, MORNING + timedelta(days=1), 6000, source=None, device_health_uuid="DH-2")
    make_activity(runner, MORNING + timedelta(days=2), 7000, source=None)
    make_activity(runner, MORNING + timedelta(days=3), 8000, source=FN, fitness_network_id=77)

    first = backfill_source(db_session)
    second = backfill_source(db_session)

    assert first.migrated_count == 3
    assert first.total_activities == 4
    assert second.migrated_count == 0
    assert second.total_activities == 4
    db_session.expire_all()
    sources = [activity.source for activity in db_session.query(Activity).order_by(Activity.start_date)]
    assert sources == [DH, DH, DH, FN]


def test_cleanup_retags_fitness_network_rows_without_id(db_session, make_user, make_activity):
    runner = make_user("runner@example.com")
    mislabeled = make_activity(runner, MORNING, 5000, source=FN, device_health_uuid="DH-1")
    make_activity(runner, MORNING + timedelta(days=1), 5000, source=FN, fitness_network_id=5)
    make_activity(runner, MORNING + timedelta(days=2), 5000, source=DH, device_health_uuid="DH-3")
    mislabeled_id = mislabeled.id

    result = cleanup_consistency(db_session)

    assert result.cleaned_count == 1
    assert result.total_activities == 3
    db_session.expire_all()
    repaired = db_session.get(Activity, mislabeled_id)
    assert repaired.source == DH
    assert repaired.origin is not None
    assert cleanup_consistency(db_session).cleaned_count == 0


def test_cleanup_warns_about_device_health_rows_without_uuid(db_session, make_user, make_activity, caplog):
    runner = make_user("runner@example.com")
    orphan = make_activity(runner, MORNING, 5000, source=DH)
    orphan_id = orphan.id

    with caplog.at_level(logging.WARNING, logger="runsync.services.migrations"):
        result = cleanup_consistency(db_session)

    assert result.cleaned_count == 0
    assert any(f"Activity {orphan_id}" in message for message in caplog.messages)
    db_session.expire_all()
    assert db_session.get(Activity, orphan_id) is not None


def test_cleanup_tags_untagged_rows(db_session, make_user, make_activity):
    runner = make_user("runner@example.com")
    make_activity(runner, MORNING, 5000, source=None, device_health_uuid="DH-1")

    assert cleanup_consistency(db_session).cleaned_count == 1
    assert backfill_source(db_session).migrated_count == 0


def test_automated_dedup_across_many_users(db_session, make_user, make_activity):
    for index in range(100):
        user = make_user(f"runner{index}@example.com")
        start = MORNING + timedelta(days=index % 7)
        make_activity(user, start, 5000, source=DH, device_health_uuid=f"DH-{index}")
        make_activity(user, start + timedelta(minutes=3), 5020, source=FN, fitness_network_id=index)

    result = automated_dedup(db_session, DH)

    assert result.duplicates_removed == 100
    assert result.kept_source == DH
    assert result.total_activities == 200
    db_session.expire_all()
    survivors = db_session.query(Activity).all()
    assert len(survivors) == 100
    assert all(activity.source == DH for activity in survivors)


def test_automated_dedup_keeps_configured_source(db_session, make_user, make_activity):
    runner = make_user("runner@example.com")
    make_activity(runner, MORNING, 5000, source=DH, device_health_uuid="DH-1")
    make_activity(runner, MORNING + timedelta(minutes=2), 5010, source=FN, fitness_network_id=1)
    make_activity(runner, MORNING + timedelta(minutes=4), 5000, source=FN, fitness_network_id=2)

    result = automated_dedup(db_session, FN)

    assert result.duplicates_removed == 1
    db_session.expire_all()
    survivors = db_session.query(Activity).order_by(Activity.start_date).all()
    assert [(activity.source, activity.fitness_network_id) for activity in survivors] == [(FN, 1), (FN, 2)]
    assert automated_dedup(db_session, FN).duplicates_removed == 0


def test_automated_dedup_leaves_distinct_runs_and_legacy_rows(db_session, make_user, make_activity):
    runner = make_user("runner@example.com")
    make_activity(runner, MORNING, 5000, source=DH, device_health_uuid="DH-1")
    make_activity(runner, MORNING + timedelta(minutes=2), 8000, source=FN, fitness_network_id=1)
    make_activity(runner, MORNING + timedelta(hours=5), 5000, source=None)
    make_activity(runner, MORNING + timedelta(hours=5, minutes=1), 5000, source=FN, fitness_network_id=2)

    result = automated_dedup(db_session, DH, MatchRules(window=timedelta(minutes=10)))

    assert result.duplicates_removed == 0
    assert result.total_activities == 4


def test_migration_status_counts(db_session, make_user, make_activity):
    runner = make_user("runner@example.com")
    make_activity(runner, MORNING, 5000, source=None, device_health_uuid="DH-1")
    make_activity(runner, MORNING + timedelta(days=1), 5000, source=FN)
    make_activity(runner, MORNING + timedelta(days=2), 5000, source=DH, device_health_uuid="DH-3")

    status = migration_status(db_session)

    assert status.total_activities == 3
    assert status.untagged == 1
    assert status.inconsistent == 1
    assert status.needs_migration is True


def test_migration_endpoints_require_admin(client, make_user, auth_headers):
    make_user("runner@example.com")
    headers = auth_headers("runner@example.com")

    assert client.get("/admin/migrations/status", headers=headers).status_code == 403
    assert client.post("/admin/migrations/backfill-source", headers=headers).status_code == 403
    assert client.post("/admin/migrations/dedup", headers=headers).status_code == 403


def test_admin_runs_jobs_over_http(client, make_user, make_activity, auth_headers):
    make_user("admin@example.com", role=UserRole.ADMIN)
    runner = make_user("runner@example.com")
    make_activity(runner, MORNING, 5000, source=None, device_health_uuid="DH-1")
    make_activity(runner, MORNING + timedelta(minutes=3), 5020, source=FN, fitness_network_id=1)
    headers = auth_headers("admin@example.com")

    backfill = client.post("/admin/migrations/backfill-source", headers=headers)
    assert backfill.status_code == 200, backfill.text
    assert backfill.json() == {"migrated_count": 1, "total_activities": 2}

    cleanup = client.post("/admin/migrations/cleanup-consistency", headers=headers)
    assert cleanup.json() == {"cleaned_count": 0, "total_activities": 2}

    dedup = client.post(
        "/admin/migrations/dedup", json={"keep_source": "fitness-network"}, headers=headers
    )
    assert dedup.status_code == 200, dedup.text
    assert dedup.json() == {
        "duplicates_removed": 1,
        "kept_source": "fitness-network",
        "total_activities": 2,
    }

    status = client.get("/admin/migrations/status", headers=headers)
    assert status.json() == {
        "total_activities": 1,
        "untagged": 0,
        "inconsistent": 0,
        "needs_migration": False,
    }


def test_admin_dedup_defaults_to_device_health(client, make_user, make_activity, auth_headers):
    make_user("admin@example.com", role=UserRole.ADMIN)
    runner = make_user("runner@example.com")
    make_activity(runner, MORNING, 5000, source=DH, device_health_uuid="DH-1")
    make_activity(runner, MORNING + timedelta(minutes=3), 5020, source=FN, fitness_network_id=1)

    response = client.post("/admin/migrations/dedup", headers=auth_headers("admin@example.com"))

    assert response.status_code == 200, response.text
    assert response.json()["kept_source"] == "device-health"
    assert response.json()["duplicates_removed"] == 1


def test_cleanup_clears_the_extra_external_id(db_session, make_user, make_activity, caplog):
    runner = make_user("runner@example.com")
    network = make_activity(
        runner, MORNING, 5000, source=FN, fitness_network_id=5, device_health_uuid="DH-X"
    )
    device = make_activity(
        runner,
        MORNING + timedelta(days=1),
        5000,
        source=DH,
        fitness_network_id=6,
        device_health_uuid="DH-Y",
    )
    network_id, device_id = network.id, device.id

    with caplog.at_level(logging.WARNING, logger="runsync.services.migrations"):
        result = cleanup_consistency(db_session)

    assert result.cleaned_count == 2
    assert any(f"Activity {network_id} (user {runner.id})" in message for message in caplog.messages)
    assert any(f"Activity {device_id} (user {runner.id})" in message for message in caplog.messages)
    db_session.expire_all()
    network = db_session.get(Activity, network_id)
    device = db_session.get(Activity, device_id)
    assert (network.source, network.fitness_network_id, network.device_health_uuid) == (FN, 5, None)
    assert (device.source, device.fitness_network_id, device.device_health_uuid) == (DH, None, "DH-Y")
    assert network.origin is not None
    assert device.origin is not None
    assert cleanup_consistency(db_session).cleaned_count == 0


def test_automated_dedup_removes_every_copy_in_one_run(db_session, make_user, make_activity):
    runner = make_user("runner@example.com")
    make_activity(runner, MORNING, 5000, source=DH, device_health_uuid="DH-1")
    make_activity(runner, MORNING + timedelta(minutes=2), 5010, source=FN, fitness_network_id=1)
    make_activity(runner, MORNING + timedelta(minutes=4), 5000, source=FN, fitness_network_id=2)

    first = automated_dedup(db_session, DH)
    second = automated_dedup(db_session, DH)

    assert first.duplicates_removed == 2
    assert second.duplicates_removed == 0
    db_session.expire_all()
    survivors = db_session.query(Activity).all()
    assert [(activity.source, activity.device_health_uuid) for activity in survivors] == [(DH, "DH-1")]
