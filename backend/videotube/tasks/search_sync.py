"""Background worker that mirrors videos and tweets into the search index

A single MongoDB change stream watches the videos and tweets collections and
each event is applied to the matching search index. The worker runs in
a daemon thread started from the application lifespan.
"""
import logging
import threading
from typing import Any, Dict, Optional

from pymongo.database import Database
from pymongo.errors import OperationFailure, PyMongoError

from videotube.core.config import settings
from videotube.core.metrics import search_sync_events_counter
from videotube.db.mongo import get_database
from videotube.services.search.index import (
    changed_indexed_fields, delete_document,
    index_document, update_document
)

logger = logging.getLogger(__name__)
search_sync_logger = logging.getLogger("search_sync")

# MongoDB collection -> search index
SYNCED_COLLECTIONS = {"videos": "videos", "tweets": "tweets"}

WATCH_PIPELINE = [
    {"$match": {"ns.coll": {"$in": list(SYNCED_COLLECTIONS)}}}
]

# Server error raised when a resume token has aged out of the oplog
CHANGE_STREAM_HISTORY_LOST = 286


def handle_change(change: Dict[str, Any]) -> Optional[str]:
    """Apply one change event to the search index

    Returns the action taken ("indexed", "updated", "deleted", "skipped",
    "ignored" or "failed"). Failures are logged and counted, never raised.
    """
    operation = change.get("operationType", "unknown")
    collection = change.get("ns", {}).get("coll")
    index = SYNCED_COLLECTIONS.get(collection)
    document_key = change.get("documentKey") or {}

    if index is None or "_id" not in document_key:
        search_sync_logger.debug(f"Ignoring {operation} event on {collection}")
        return "ignored"

    doc_id = str(document_key["_id"])

    try:
        if operation in ("insert", "replace"):
            full_document = change.get("fullDocument")
            if not full_document:
                search_sync_logger.warning(f"{operation} event for {index}/{doc_id} has no document")
                action = "skipped"
            else:
                index_document(index, doc_id, full_document)
                action = "indexed"

        elif operation == "update":
            description = change.get("updateDescription") or {}
            changed = changed_indexed_fields(
                index,
                description.get("updatedFields"),
                description.get("removedFields")
            )
            if not changed:
                action = "skipped"
            elif change.get("fullDocument"):
                index_document(index, doc_id, change["fullDocument"])
                action = "indexed"
            else:
                update_document(index, doc_id, changed)
                action = "updated"

        elif operation == "delete":
            delete_document(index, doc_id)
            action = "deleted"

        else:
            search_sync_logger.info(f"Ignoring unsupported {operation} event on {collection}")
            return "ignored"

    except Exception as e:
        search_sync_events_counter.labels(index=index, operation=operation, status="failed").inc()
        search_sync_logger.error(
            f"Failed to apply {operation} event for {index}/{doc_id}: {e}",
            exc_info=True
        )
        return "failed"

    search_sync_events_counter.labels(index=index, operation=operation, status=action).inc()
    search_sync_logger.debug(f"{operation} event for {index}/{doc_id}: {action}")
    return action


class SearchSyncWorker:
    """Consumes the change stream in a background thread until stopped"""

    def __init__(self, db: Optional[Database] = None, retry_seconds: Optional[float] = None):
        self._db = db
        self.retry_seconds = settings.SEARCH_SYNC_RETRY_SECONDS if retry_seconds is None else retry_seconds
        self.resume_token: Optional[Dict[str, Any]] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="search-sync", daemon=True)
        self._thread.start()
        logger.info(f"Search sync worker started for collections: {', '.join(SYNCED_COLLECTIONS)}")

    def stop(self, timeout: float = 10.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Search sync worker did not stop in time")
            self._thread = None
        logger.info("Search sync worker stopped")

    def run(self) -> None:
        """Watch loop: reopen the stream after it closes or fails until stopped"""
        while not self._stop_event.is_set():
            try:
                self.consume()
            except OperationFailure as e:
                if e.code == CHANGE_STREAM_HISTORY_LOST:
                    search_sync_logger.warning("Resume token expired, restarting change stream from now")
                    self.resume_token = None
                else:
                    search_sync_logger.error(f"Change stream failed: {e}", exc_info=True)
            except PyMongoError as e:
                search_sync_logger.error(
                    f"Change stream failed: {e}. Retrying in {self.retry_seconds}s",
                    exc_info=True
                )
            self._stop_event.wait(self.retry_seconds)

    def consume(self) -> None:
        """Open the change stream and apply events until stopped or the stream closes"""
        db = self._db if self._db is not None else get_database()
        with db.watch(
            pipeline=WATCH_PIPELINE,
            full_document="updateLookup",
            resume_after=self.resume_token,
            max_await_time_ms=settings.SEARCH_SYNC_MAX_AWAIT_MS,
        ) as stream:
            search_sync_logger.info("Change stream opened" + (" (resumed)" if self.resume_token else ""))
            while stream.alive and not self._stop_event.is_set():
                change = stream.try_next()
                if change is None:
                    continue
                if change.get("operationType") == "invalidate":
                    search_sync_logger.warning("Change stream invalidated, reopening")
                    self.resume_token = None
                    return
                handle_change(change)
                self.resume_token = stream.resume_token


# Global worker instance, created by the application lifespan
_worker: Optional[SearchSyncWorker] = None


def start_search_sync(db: Optional[Database] = None) -> SearchSyncWorker:
    global _worker
    if _worker is None:
        _worker = SearchSyncWorker(db)
    _worker.start()
    return _worker


def stop_search_sync() -> None:
    global _worker
    if _worker is not None:
        _worker.stop()
        _worker = None
