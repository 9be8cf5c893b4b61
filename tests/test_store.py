from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

import pytest

from campusconnect.store import Entity, RecordStore


def test_initialize_creates_empty_array_per_entity(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "data")
    store.initialize()

    for entity in Entity:
        path = store.path_for(entity)
        assert path.name == f"{entity.value}.json"
        assert json.loads(path.read_text(encoding="utf-8")) == []


def test_initialize_keeps_existing_records(store: RecordStore) -> None:
    assert store.write(Entity.FEEDBACK, [{"id": "1", "feedback": "Great library hours"}])
    store.initialize()
    assert store.read(Entity.FEEDBACK) == [{"id": "1", "feedback": "Great library hours"}]


def test_write_pretty_prints_and_read_returns_records(store: RecordStore) -> None:
    records = [{"id": "1", "title": "Exam venues"}, {"id": "2", "title": "Career Expo"}]
    assert store.write(Entity.ANNOUNCEMENTS, records) is True

    text = store.path_for(Entity.ANNOUNCEMENTS).read_text(encoding="utf-8")
    assert text == json.dumps(records, indent=2)
    assert store.read(Entity.ANNOUNCEMENTS) == records


def test_read_missing_file_returns_empty_list(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "nowhere")
    assert store.read(Entity.USERS) == []


def test_read_corrupt_file_returns_empty_list_and_logs(store: RecordStore, caplog) -> None:
    store.path_for(Entity.REQUESTS).write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="campusconnect.store"):
        assert store.read(Entity.REQUESTS) == []

    assert "Error reading" in caplog.text


def test_read_non_array_document_returns_empty_list(store: RecordStore) -> None:
    store.path_for(Entity.USERS).write_text('{"id": "1"}', encoding="utf-8")
    assert store.read(Entity.USERS) == []


def test_write_failure_returns_false_and_leaves_previous_contents(store: RecordStore, monkeypatch, caplog) -> None:
    assert store.write(Entity.REQUESTS, [{"id": "old"}])

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", failing_replace)
    with caplog.at_level(logging.ERROR, logger="campusconnect.store"):
        assert store.write(Entity.REQUESTS, [{"id": "new"}]) is False

    monkeypatch.undo()
    assert store.read(Entity.REQUESTS) == [{"id": "old"}]
    assert "Error writing" in caplog.text
    leftovers = [p.name for p in store.data_dir.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_locked_read_modify_write_does_not_lose_updates(store: RecordStore) -> None:
    workers = 8
    per_worker = 10

    def append_records(worker: int) -> None:
        for index in range(per_worker):
            with store.locked(Entity.FEEDBACK):
                records = store.read(Entity.FEEDBACK)
                records.append({"id": f"{worker}-{index}"})
                assert store.write(Entity.FEEDBACK, records)

    threads = [threading.Thread(target=append_records, args=(worker,)) for worker in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    ids = {record["id"] for record in store.read(Entity.FEEDBACK)}
    assert len(ids) == workers * per_worker


@pytest.mark.parametrize("entity", list(Entity))
def test_path_for_lives_in_data_dir(store: RecordStore, entity: Entity) -> None:
    assert store.path_for(entity).parent == store.data_dir


def test_read_skips_non_object_elements_with_a_warning(store: RecordStore, caplog) -> None:
    store.path_for(Entity.ANNOUNCEMENTS).write_text('[{"id": "1"}, "legacy-string", 7]', encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="campusconnect.store"):
        assert store.read(Entity.ANNOUNCEMENTS) == [{"id": "1"}]

    assert "Skipping 2 non-object element(s)" in caplog.text
