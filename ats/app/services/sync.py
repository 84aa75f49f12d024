from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import TYPE_CHECKING, Optional

from ats.app.models import CandidateRecord, utc_now
from ats.app.persistence import DocumentStoreError, DocumentStoreUnavailableError

if TYPE_CHECKING:
    from ats.app.persistence import SqlDocumentStore

logger = logging.getLogger("ats.sync")


class CandidateSync:
    """
    Fire-and-forget writer for pipeline moves.

    One worker thread, so updates reach the document store in the order they
    were submitted. Failures are logged; the in-memory board is never rolled back.
    """

    def __init__(
        self,
        documents: Optional["SqlDocumentStore"],
        *,
        max_retries: int = 0,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.documents = documents
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="candidate-sync")
        self._lock = Lock()
        self._pending: set[Future] = set()
        self._failures = 0

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    def submit_status(self, candidate: CandidateRecord) -> Optional[Future]:
        if not self.documents:
            return None
        # Only the board position is written; other fields stay as created.
        partial = {"status": candidate.status, "updated_at": utc_now()}
        future = self._executor.submit(self._write, candidate.id, partial)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._finish)
        return future

    def _write(self, candidate_id: str, partial: dict) -> bool:
        attempts = 0
        while True:
            attempts += 1
            try:
                self.documents.update("candidates", candidate_id, partial)
                return True
            except DocumentStoreUnavailableError as exc:
                if attempts <= self.max_retries:
                    logger.warning(
                        "candidate_sync_retry candidate_id=%s attempt=%s error=%s",
                        candidate_id,
                        attempts,
                        exc,
                    )
                    time.sleep(self.backoff_seconds * attempts)
                    continue
                self._record_failure(candidate_id, attempts, exc)
                return False
            except DocumentStoreError as exc:
                self._record_failure(candidate_id, attempts, exc)
                return False

    def _record_failure(self, candidate_id: str, attempts: int, exc: Exception) -> None:
        with self._lock:
            self._failures += 1
        logger.error(
            "candidate_sync_failed candidate_id=%s attempts=%s error=%s",
            candidate_id,
            attempts,
            exc,
        )

    def _finish(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        exc = future.exception()
        if exc is not None:
            logger.error("candidate_sync_crashed error=%s", exc, exc_info=exc)

    def flush(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
