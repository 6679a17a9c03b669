"""
Background analysis worker.

Runs engine requests off the caller's thread. Only the most recent request
matters: submitting replaces anything still queued, and a result that
finishes after a newer request arrived is dropped instead of delivered.
"""

import itertools
import logging
import threading
from typing import Any, Callable, Mapping, Optional, Tuple

from src.core.result import ErrorCode
from src.engine import EngineLimits

from .messages import AnalyzeRequest, FailureResponse, Request, Response, handle_request

logger = logging.getLogger(__name__)


class AnalysisWorker:
    """
    Single background thread with a one-slot request queue.

    Attributes:
        callback: Called with each response that is still current
        limits: Engine limits passed to every analysis
        discarded: Number of stale results dropped so far

    Example:
        with AnalysisWorker(lambda response: print(response.to_dict())) as worker:
            worker.submit("Fireball [3]: (5 + slot)d6", {'slot': 5})
    """

    def __init__(
        self,
        callback: Callable[[Response], None],
        limits: Optional[EngineLimits] = None,
        name: str = 'analysis-worker'
    ):
        self.callback = callback
        self.limits = limits
        self.name = name
        self.discarded = 0

        self._condition = threading.Condition()
        self._pending: Optional[Tuple[int, Request]] = None
        self._latest_sequence = 0
        self._sequence = itertools.count(1)
        self._ids = itertools.count(1)
        self._running = False
        self._thread: Optional[threading.Thread] = None

    # ---- lifecycle ----

    def start(self) -> 'AnalysisWorker':
        with self._condition:
            if self._running:
                return self
            self._running = True
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.debug(f"Started {self.name}")
        return self

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        with self._condition:
            self._running = False
            self._pending = None
            self._condition.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug(f"Stopped {self.name}")

    @property
    def running(self) -> bool:
        return self._running

    def __enter__(self) -> 'AnalysisWorker':
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ---- requests ----

    def submit(self, source: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """
        Queue an analysis with a fresh request id.

        Returns:
            The request id assigned to this analysis
        """
        request = AnalyzeRequest(source=source, params=dict(params or {}), request_id=next(self._ids))
        self.submit_request(request)
        return request.request_id

    def submit_request(self, request: Request) -> None:
        """
        Queue a request, replacing any request that has not started yet.

        Staleness is decided by submission order, not by request_id, so
        clients may reuse ids freely. The id is echoed back unchanged.
        """
        with self._condition:
            sequence = next(self._sequence)
            if self._pending is not None:
                logger.debug(f"Request {self._pending[1].request_id} superseded by {request.request_id}")
            self._pending = (sequence, request)
            self._latest_sequence = sequence
            self._condition.notify_all()

    def _is_current(self, sequence: int) -> bool:
        with self._condition:
            return sequence == self._latest_sequence

    def _run(self) -> None:
        while True:
            with self._condition:
                while self._pending is None and self._running:
                    self._condition.wait()
                if not self._running:
                    return
                sequence, request = self._pending
                self._pending = None

            try:
                response = handle_request(request, self.limits)
            except Exception as e:
                logger.exception(f"Request {request.request_id} failed")
                response = FailureResponse(request.request_id, str(e), ErrorCode.UNEXPECTED_ERROR.value)

            if not self._is_current(sequence):
                self.discarded += 1
                logger.debug(f"Discarding stale result for request {request.request_id}")
                continue

            try:
                self.callback(response)
            except Exception as e:
                # A broken consumer must not kill the worker
                logger.error(f"Error in analysis callback: {e}")


__all__ = ['AnalysisWorker']
