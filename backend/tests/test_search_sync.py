"""Change stream to search index sync tests"""
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure

from videotube.tasks import search_sync
from videotube.tasks.search_sync import SearchSyncWorker, handle_change


def change_event(operation, collection="videos", doc_id=None, full_document=None,
                 updated=None, removed=None):
    event = {
        "operationType": operation,
        "ns": {"db": "videotube", "coll": collection},
        "documentKey": {"_id": doc_id or ObjectId()},
    }
    if full_document is not None:
        event["fullDocument"] = full_document
    if updated is not None or removed is not None:
        event["updateDescription"] = {"updatedFields": updated or {}, "removedFields": removed or []}
    return event


class FakeChangeStream:
    """Replays a list of events, then reports itself closed"""

    def __init__(self, events):
        self._events = list(events)
        self.resume_token = None
        self.alive = True

    def try_next(self):
        if not self._events:
            self.alive = False
            return None
        event = self._events.pop(0)
        self.resume_token = {"_data": f"token-{id(event)}"}
        return event

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.mark.critical
class TestHandleChange:
    """Test handle_change"""

    def test_insert_indexes_full_document(self, search_client):
        doc_id = ObjectId()
        action = handle_change(change_event(
            "insert", "tweets", doc_id, full_document={"_id": doc_id, "content": "hello", "owner": ObjectId()}
        ))
        assert action == "indexed"
        kwargs = search_client.index.call_args.kwargs
        assert kwargs["index"] == "tweets"
        assert kwargs["id"] == str(doc_id)
        assert kwargs["body"]["content"] == "hello"

    def test_replace_indexes_full_document(self, search_client):
        action = handle_change(change_event("replace", full_document={"title": "Replaced"}))
        assert action == "indexed"

    def test_insert_without_document_is_skipped(self, search_client):
        assert handle_change(change_event("insert")) == "skipped"
        search_client.index.assert_not_called()

    def test_update_of_unindexed_fields_is_skipped(self, search_client):
        action = handle_change(change_event("update", updated={"views": 12, "updated_at": "now"}))
        assert action == "skipped"
        search_client.index.assert_not_called()
        search_client.update.assert_not_called()

    def test_update_uses_full_document_when_present(self, search_client):
        action = handle_change(change_event(
            "update",
            updated={"is_published": False},
            full_document={"title": "T", "description": "D", "is_published": False}
        ))
        assert action == "indexed"
        assert search_client.index.call_args.kwargs["body"]["is_published"] is False

    def test_update_without_full_document_is_partial(self, search_client):
        doc_id = ObjectId()
        action = handle_change(change_event("update", doc_id=doc_id, updated={"title": "New"}, removed=["description"]))
        assert action == "updated"
        kwargs = search_client.update.call_args.kwargs
        assert kwargs["id"] == str(doc_id)
        assert kwargs["body"] == {"doc": {"title": "New", "description": None}, "doc_as_upsert": True}

    def test_delete(self, search_client):
        doc_id = ObjectId()
        assert handle_change(change_event("delete", "tweets", doc_id)) == "deleted"
        search_client.delete.assert_called_once()
        assert search_client.delete.call_args.kwargs["id"] == str(doc_id)

    def test_other_collections_are_ignored(self, search_client):
        assert handle_change(change_event("insert", "comments", full_document={"content": "x"})) == "ignored"
        search_client.index.assert_not_called()

    def test_unsupported_operation_is_ignored(self, search_client):
        assert handle_change(change_event("drop")) == "ignored"

    def test_failures_are_contained(self, search_client):
        search_client.index.side_effect = RuntimeError("cluster down")
        action = handle_change(change_event("insert", full_document={"title": "x"}))
        assert action == "failed"


@pytest.mark.high
class TestSearchSyncWorker:
    """Test the change stream consumer"""

    def test_consume_applies_events_and_tracks_resume_token(self, search_client):
        stream = FakeChangeStream([
            change_event("insert", full_document={"title": "One"}),
            change_event("delete", "tweets"),
        ])
        db = MagicMock()
        db.watch.return_value = stream
        worker = SearchSyncWorker(db=db, retry_seconds=0)

        worker.consume()

        assert search_client.index.call_count == 1
        assert search_client.delete.call_count == 1
        assert worker.resume_token == stream.resume_token
        watch_kwargs = db.watch.call_args.kwargs
        assert watch_kwargs["pipeline"] == search_sync.WATCH_PIPELINE
        assert watch_kwargs["full_document"] == "updateLookup"
        assert watch_kwargs["resume_after"] is None

    def test_resumes_from_last_token(self, search_client):
        db = MagicMock()
        db.watch.return_value = FakeChangeStream([])
        worker = SearchSyncWorker(db=db, retry_seconds=0)
        worker.resume_token = {"_data": "saved"}

        worker.consume()

        assert db.watch.call_args.kwargs["resume_after"] == {"_data": "saved"}

    def test_invalidate_resets_resume_token(self, search_client):
        db = MagicMock()
        db.watch.return_value = FakeChangeStream([
            change_event("insert", full_document={"title": "One"}),
            {"operationType": "invalidate"},
            change_event("insert", full_document={"title": "Never seen"}),
        ])
        worker = SearchSyncWorker(db=db, retry_seconds=0)

        worker.consume()

        assert worker.resume_token is None
        assert search_client.index.call_count == 1

    def test_lost_history_restarts_from_now(self):
        worker = SearchSyncWorker(db=MagicMock(), retry_seconds=0)
        worker.resume_token = {"_data": "stale"}

        def fail_then_stop():
            worker._stop_event.set()
            raise OperationFailure("resume point no longer in oplog", code=search_sync.CHANGE_STREAM_HISTORY_LOST)

        with patch.object(worker, "consume", side_effect=fail_then_stop):
            worker.run()

        assert worker.resume_token is None

    def test_other_failures_keep_resume_token(self):
        worker = SearchSyncWorker(db=MagicMock(), retry_seconds=0)
        worker.resume_token = {"_data": "kept"}

        def fail_then_stop():
            worker._stop_event.set()
            raise OperationFailure("not a replica set", code=40573)

        with patch.object(worker, "consume", side_effect=fail_then_stop):
            worker.run()

        assert worker.resume_token == {"_data": "kept"}

    def test_closed_stream_waits_before_reopening(self):
        worker = SearchSyncWorker(db=MagicMock(), retry_seconds=3)
        waits = []

        def record_wait(timeout):
            waits.append(timeout)
            worker._stop_event.set()
            return True

        with patch.object(worker, "consume", return_value=None) as consume:
            with patch.object(worker._stop_event, "wait", side_effect=record_wait):
                worker.run()

        assert consume.call_count == 1
        assert waits == [3]

    def test_start_and_stop(self):
        db = MagicMock()
        db.watch.side_effect = lambda **kwargs: FakeChangeStream([])
        worker = SearchSyncWorker(db=db, retry_seconds=0.01)

        worker.start()
        assert worker.is_running
        worker.stop(timeout=5)
        assert not worker.is_running
