from __future__ import annotations

from datetime import timedelta

import pytest

from hirelane.db.base import utcnow
from hirelane.db.models import Candidate, Job
from hirelane.db.store import PersistentStore
from hirelane.errors import NotFound, StorageUnavailable, ValidationError


def _job(store: PersistentStore, title: str = "Backend Engineer", order: int = 1) -> int:
    return store.insert("jobs", {"title": title, "slug": title.lower().replace(" ", "-"), "order": order})


def _candidate(store: PersistentStore, job_id: int) -> int:
    return store.insert(
        "candidates",
        {
            "job_id": job_id,
            "job_title": "Backend Engineer",
            "name": "Emma Clark",
            "email": "emma.clark@example.com",
            "applied_date": utcnow() - timedelta(days=3),
            "stage": "applied",
        },
    )


def test_store_is_unusable_until_opened() -> None:
    store = PersistentStore.in_memory()
    assert not store.is_open
    with pytest.raises(StorageUnavailable):
        store.count("jobs")


def test_in_memory_store_is_not_durable(store: PersistentStore) -> None:
    assert store.is_open
    assert not store.is_durable
    assert store.schema_version == 4


def test_insert_assigns_increasing_ids(store: PersistentStore) -> None:
    first = _job(store, order=1)
    second = _job(store, "Data Scientist", order=2)
    assert second > first
    assert store.require("jobs", first).title == "Backend Engineer"


def test_insert_rejects_unknown_fields_and_bad_enums(store: PersistentStore) -> None:
    with pytest.raises(ValidationError):
        store.insert("jobs", {"title": "X", "slug": "x", "order": 1, "salary": 10})
    with pytest.raises(ValidationError):
        store.insert("jobs", {"title": "X", "slug": "x", "order": 1, "status": "paused"})
    assert store.count("jobs") == 0


def test_insert_rejects_dangling_foreign_keys(store: PersistentStore) -> None:
    with pytest.raises(ValidationError):
        _candidate(store, job_id=404)


def test_query_filters_orders_and_paginates(store: PersistentStore) -> None:
    for order in (3, 1, 2):
        _job(store, f"Job {order}", order=order)

    ordered = store.query("jobs", order_by=Job.order)
    assert [job.order for job in ordered] == [1, 2, 3]
    assert [job.order for job in store.query("jobs", order_by=Job.order, offset=1, limit=1)] == [2]
    assert store.count("jobs", Job.order > 1) == 2


def test_update_changes_mutable_fields(store: PersistentStore) -> None:
    job_id = _job(store)
    candidate_id = _candidate(store, job_id)

    updated = store.update("candidates", candidate_id, {"stage": "screen"})

    assert updated.stage == "screen"
    assert store.require("candidates", candidate_id).stage == "screen"


@pytest.mark.parametrize(
    "patch",
    [
        {"applied_date": utcnow()},
        {"id": 99},
        {"stage": "interviewing"},
        {"nickname": "Em"},
    ],
)
def test_update_rejects_invalid_patches_without_writing(store: PersistentStore, patch: dict) -> None:
    candidate_id = _candidate(store, _job(store))

    with pytest.raises(ValidationError):
        store.update("candidates", candidate_id, patch)

    assert store.require("candidates", candidate_id).stage == "applied"


def test_append_only_tables_reject_updates(store: PersistentStore) -> None:
    candidate_id = _candidate(store, _job(store))
    note_id = store.insert("notes", {"candidate_id": candidate_id, "author": "Mike Chen", "content": "Hi"})

    with pytest.raises(ValidationError):
        store.update("notes", note_id, {"content": "Edited"})
    with pytest.raises(ValidationError):
        store.update("timeline", 1, {"description": "Edited"})


def test_missing_rows_raise_not_found(store: PersistentStore) -> None:
    with pytest.raises(NotFound) as excinfo:
        store.update("candidates", 12345, {"stage": "tech"})
    assert excinfo.value.table == "candidates"
    assert excinfo.value.key == 12345
    assert store.get("candidates", 12345) is None


def test_transaction_is_all_or_nothing(store: PersistentStore) -> None:
    job_id = _job(store)

    with pytest.raises(NotFound):
        with store.transaction() as tx:
            tx.insert("candidates", {"job_id": job_id, "name": "Ava King", "stage": "applied"})
            tx.require("candidates", 999)

    assert store.count(Candidate.__tablename__) == 0


def test_unknown_table_is_a_validation_error(store: PersistentStore) -> None:
    with pytest.raises(ValidationError):
        store.count("offers")
