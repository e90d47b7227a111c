"""
Perudo Plus - Search Worker

Runs ISMCTS searches in a separate process so a long search never blocks
the game loop. Requests and responses cross the process boundary as plain
JSON-ready dicts.

The dispatcher enforces:
- a hard timeout of the search budget plus a grace period
- one request in flight at a time
- a SearchError on any failure, leaving the fallback to the caller
"""

import logging
import threading
from concurrent.futures import Executor, ProcessPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from concurrent.futures.process import BrokenProcessPool
from typing import Callable

from pydantic import ValidationError

from src.ai.search.ismcts import ISMCTSEngine
from src.engine.errors import SearchError, SearchTimeoutError, SearchUnavailableError
from src.protocol.search import SearchRequest, SearchResponse

logger = logging.getLogger(__name__)

DEFAULT_GRACE_MS = 1000


def run_search_job(payload: dict) -> dict:
    """Worker-process entry point: one search from a serialized request."""
    request = SearchRequest.model_validate(payload)
    outcome = ISMCTSEngine.from_request(request).run()
    response = SearchResponse(
        decision=outcome.decision,
        iterations_completed=outcome.iterations,
        time_spent_ms=outcome.time_spent_ms,
    )
    return response.model_dump(mode="json")


def _default_executor() -> Executor:
    return ProcessPoolExecutor(max_workers=1)


class SearchWorker:
    """
    Dispatcher for the search process.

    The executor is created lazily and thrown away after a timeout or a
    broken pool; the next request starts a fresh one.

    Args:
        grace_ms: Extra time allowed beyond the request's budget
        executor_factory: Builds the executor (a process pool by default)
    """

    def __init__(
        self,
        grace_ms: int = DEFAULT_GRACE_MS,
        executor_factory: Callable[[], Executor] = _default_executor,
    ) -> None:
        self.grace_ms = grace_ms
        self._executor_factory = executor_factory
        self._executor: Executor | None = None
        self._lock = threading.Lock()

    def timeout_for(self, request: SearchRequest) -> float:
        """Hard timeout in seconds for a request."""
        return (request.time_budget_ms + self.grace_ms) / 1000

    def search(self, request: SearchRequest) -> SearchResponse:
        """
        Run one search in the worker process.

        Raises:
            SearchTimeoutError: The worker did not answer in time
            SearchUnavailableError: The worker is busy or could not run
            SearchError: The request or response could not be processed
        """
        timeout = self.timeout_for(request)

        if not self._lock.acquire(timeout=timeout):
            raise SearchUnavailableError("Search worker is busy.")
        try:
            try:
                payload = request.model_dump(mode="json")
            except (TypeError, ValueError) as exc:
                raise SearchError(f"Could not serialize search request: {exc}") from exc

            try:
                future = self._ensure_executor().submit(run_search_job, payload)
            except (BrokenProcessPool, RuntimeError, OSError) as exc:
                self._discard()
                raise SearchUnavailableError(f"Search worker unavailable: {exc}") from exc

            try:
                result = future.result(timeout=timeout)
            except FutureTimeoutError as exc:
                future.cancel()
                self._discard()
                raise SearchTimeoutError(f"Search exceeded {timeout:.1f}s.") from exc
            except BrokenProcessPool as exc:
                self._discard()
                raise SearchUnavailableError(f"Search worker crashed: {exc}") from exc
            except Exception as exc:
                raise SearchError(f"Search failed in worker: {exc}") from exc
        finally:
            self._lock.release()

        try:
            response = SearchResponse.model_validate(result)
        except ValidationError as exc:
            raise SearchError(f"Invalid search response: {exc}") from exc

        logger.debug(
            "Search worker: %d iterations in %dms",
            response.iterations_completed, response.time_spent_ms,
        )
        return response

    def shutdown(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    def _ensure_executor(self) -> Executor:
        if self._executor is None:
            self._executor = self._executor_factory()
        return self._executor

    def _discard(self) -> None:
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
