"""Tests for the task store."""

import json
from datetime import datetime, time, timedelta, timezone

import pytest

from caretaker.models import (
    CleanDisk,
    CleanMemory,
    Daily,
    Interval,
    OnCondition,
    OnStartup,
    ScheduledTask,
    SecurityToggle,
)
from caretaker.services import TaskStore

UTC = timezone.utc


def _interval_task(task_id: str = "t1", minutes: int = 60) -> ScheduledTask:
    return ScheduledTask(
        id=task_id,
        name=f"Task {task_id}",
        task_type=SecurityToggle(enable=True),
        schedule=Interval(minutes=minutes),
    )


class TestTaskStoreCrud:
    """Tests for adding, updating and removing tasks."""

    def test_add_computes_next_run(self, store, clock):
        task = store.add(_interval_task())
        assert task.next_run == clock.now + timedelta(minutes=60)
        assert store.get("t1").next_run == task.next_run

    def test_add_ignores_supplied_next_run(self, store, clock):
        task = _interval_task()
        task.next_run = datetime(2000, 1, 1, tzinfo=UTC)
        added = store.add(task)
        assert added.next_run == clock.now + timedelta(minutes=60)

    def test_add_evaluated_rules_have_no_next_run(self, store):
        task = ScheduledTask(
            id="m1",
            name="Memory",
            task_type=CleanMemory(threshold_percent=85),
            schedule=OnCondition(),
        )
        assert store.add(task).next_run is None

    def test_add_same_id_replaces(self, store):
        store.add(_interval_task())
        store.add(_interval_task(minutes=5))
        assert len(store) == 1
        assert store.get("t1").schedule.minutes == 5

    def test_returned_records_are_copies(self, store):
        store.add(_interval_task())
        copy = store.get("t1")
        copy.name = "Mutated"
        copy.run_count = 10
        assert store.get("t1").name == "Task t1"
        assert store.get("t1").run_count == 0

    def test_list_in_insertion_order(self, store):
        for task_id in ("b", "a", "c"):
            store.add(_interval_task(task_id))
        assert [t.id for t in store.list()] == ["b", "a", "c"]

    def test_update_keeps_history(self, store, clock):
        store.add(_interval_task())
        store.mark_completed("t1", success=False, error="boom")

        edited = store.get("t1")
        edited.name = "Renamed"
        edited.schedule = Daily(time=time(2, 0))
        edited.run_count = 0
        edited.last_error = None
        updated = store.update(edited)

        assert updated.name == "Renamed"
        assert updated.run_count == 1
        assert updated.success_count == 0
        assert updated.last_error == "boom"
        assert updated.last_run == clock.now
        assert updated.next_run == datetime(2025, 1, 16, 2, 0, tzinfo=UTC)

    def test_update_unknown_returns_none(self, store):
        assert store.update(_interval_task("missing")) is None
        assert len(store) == 0

    def test_set_enabled(self, store):
        store.add(_interval_task())
        task = store.set_enabled("t1", False)
        assert task.enabled is False
        assert store.get("t1").enabled is False
        assert store.set_enabled("missing", True) is None

    def test_remove(self, store):
        store.add(_interval_task())
        assert store.remove("t1") is True
        assert store.get("t1") is None
        assert store.remove("t1") is False


class TestMarkCompleted:
    def test_success_updates_counters(self, store, clock):
        store.add(_interval_task())
        clock.advance(minutes=61)

        task = store.mark_completed("t1", success=True)

        assert task.run_count == 1
        assert task.success_count == 1
        assert task.last_run == clock.now
        assert task.last_error is None

    def test_failure_records_error(self, store):
        store.add(_interval_task())
        task = store.mark_completed("t1", success=False, error="access denied")
        assert task.run_count == 1
        assert task.success_count == 0
        assert task.last_error == "access denied"

    def test_success_clears_previous_error(self, store):
        store.add(_interval_task())
        store.mark_completed("t1", success=False, error="access denied")
        task = store.mark_completed("t1", success=True)
        assert task.last_error is None
        assert task.run_count == 2
        assert task.success_count == 1

    def test_next_run_follows_completion_time(self, store, clock):
        """Test an Interval(60) task completed at 10:00 is next due at 11:00."""
        clock.now = datetime(2025, 1, 15, 10, 0, tzinfo=UTC)
        store.add(_interval_task())
        task = store.mark_completed("t1", success=True)
        assert task.next_run == datetime(2025, 1, 15, 11, 0, tzinfo=UTC)

        clock.now = datetime(2025, 1, 15, 13, 17, tzinfo=UTC)
        task = store.mark_completed("t1", success=True)
        assert task.next_run == datetime(2025, 1, 15, 14, 17, tzinfo=UTC)

    def test_unknown_task_dropped(self, store):
        assert store.mark_completed("missing", success=True) is None


class TestPersistence:
    """Tests for the JSON storage file."""

    def test_every_mutation_writes_file(self, store, temp_storage_path):
        store.add(_interval_task())
        assert temp_storage_path.exists()

        data = json.loads(temp_storage_path.read_text())
        assert list(data) == ["t1"]
        assert data["t1"]["id"] == "t1"
        assert data["t1"]["schedule"] == {"kind": "interval", "minutes": 60}
        assert data["t1"]["task_type"] == {"kind": "security_toggle", "enable": True}

        store.remove("t1")
        assert json.loads(temp_storage_path.read_text()) == {}

    def test_no_temp_file_left(self, store, temp_storage_path):
        store.add(_interval_task())
        assert [p.name for p in temp_storage_path.parent.iterdir()] == [temp_storage_path.name]

    def test_reload_restores_history(self, store, temp_storage_path, clock):
        store.add(_interval_task())
        store.mark_completed("t1", success=False, error="boom")

        reloaded = TaskStore(temp_storage_path, clock=clock)
        assert reloaded.load() == 1
        task = reloaded.get("t1")
        assert task.run_count == 1
        assert task.last_error == "boom"
        assert task.last_run == clock.now

    def test_load_recomputes_next_run(self, store, temp_storage_path, clock):
        store.add(_interval_task())
        clock.advance(days=3)

        reloaded = TaskStore(temp_storage_path, clock=clock)
        reloaded.load()
        assert reloaded.get("t1").next_run == clock.now + timedelta(minutes=60)

    def test_missing_file_is_empty(self, store):
        assert store.load() == 0
        assert store.list() == []

    def test_corrupt_file_is_empty(self, store, temp_storage_path):
        temp_storage_path.write_text("{not json")
        assert store.load() == 0
        assert len(store) == 0

    def test_non_object_file_ignored(self, store, temp_storage_path):
        temp_storage_path.write_text("[1, 2, 3]")
        assert store.load() == 0

    def test_invalid_record_skipped(self, store, temp_storage_path):
        good = _interval_task("good").model_dump(mode="json")
        temp_storage_path.write_text(
            json.dumps({"good": good, "bad": {"id": "bad", "name": "No type"}})
        )
        assert store.load() == 1
        assert [t.id for t in store.list()] == ["good"]

    def test_key_wins_over_record_id(self, store, temp_storage_path):
        record = _interval_task("inner").model_dump(mode="json")
        temp_storage_path.write_text(json.dumps({"outer": record}))
        store.load()
        assert store.get("outer").id == "outer"
        assert store.get("inner") is None

    def test_save_writes_snapshot(self, store, temp_storage_path):
        store.register_builtin([_interval_task()])
        assert not temp_storage_path.exists()
        store.save()
        assert list(json.loads(temp_storage_path.read_text())) == ["t1"]


class TestBuiltinMerge:
    def test_file_overlays_builtins(self, temp_storage_path, clock):
        edited = _interval_task("builtin").model_copy(
            update={"name": "Edited by user", "enabled": False}
        )
        temp_storage_path.write_text(
            json.dumps({"builtin": edited.model_dump(mode="json")})
        )

        store = TaskStore(temp_storage_path, clock=clock)
        store.register_builtin(
            [
                _interval_task("builtin"),
                ScheduledTask(
                    id="startup",
                    name="Startup",
                    task_type=CleanDisk(threshold_mb=0),
                    schedule=OnStartup(),
                ),
            ]
        )
        store.load()

        assert [t.id for t in store.list()] == ["builtin", "startup"]
        assert store.get("builtin").name == "Edited by user"
        assert store.get("builtin").enabled is False
        assert store.get("startup") is not None


class TestPersistenceFailure:
    """Write failures are logged and the in-memory state stays authoritative."""

    @pytest.fixture
    def broken_store(self, tmp_path, clock):
        # The parent of the storage file is a regular file, so every write fails
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        return TaskStore(blocker / "scheduled_tasks.json", clock=clock)

    def test_mutations_survive_write_failure(self, broken_store, caplog):
        assert broken_store.add(_interval_task()).id == "t1"

        task = broken_store.mark_completed("t1", success=False, error="boom")
        assert task.run_count == 1
        assert broken_store.get("t1").last_error == "boom"

        assert broken_store.set_enabled("t1", False).enabled is False
        assert broken_store.get("t1").enabled is False
        assert "Failed to save scheduled tasks" in caplog.text

        assert broken_store.remove("t1") is True
        assert broken_store.get("t1") is None

    def test_update_survives_write_failure(self, broken_store):
        broken_store.add(_interval_task())
        edited = broken_store.get("t1")
        edited.name = "Renamed"
        assert broken_store.update(edited).name == "Renamed"
        assert broken_store.get("t1").name == "Renamed"

    def test_save_raises(self, broken_store):
        broken_store.add(_interval_task())
        with pytest.raises(OSError):
            broken_store.save()
