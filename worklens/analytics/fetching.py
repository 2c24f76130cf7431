"""Concurrent execution of independent record fetches."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

logger = logging.getLogger(__name__)


class FetchRunner:
    """Run zero-argument fetch callables and return their results in call order.

    With ``max_workers`` of 1 the calls run inline. Otherwise they are submitted
    to a per-call thread pool; the first failure (in call order) cancels fetches
    that have not started yet and is re-raised, so no partial result escapes.
    """

    def __init__(self, max_workers: int = 1) -> None:
        self.max_workers = max(1, max_workers)

    def gather(self, *calls: Callable[[], Any]) -> list[Any]:
        if self.max_workers == 1 or len(calls) <= 1:
            return [self._run(call) for call in calls]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(calls))) as executor:
            futures = [executor.submit(self._run, call) for call in calls]
            try:
                return [future.result() for future in futures]
            except Exception:
                for future in futures:
                    future.cancel()
                raise

    @staticmethod
    def _run(call: Callable[[], Any]) -> Any:
        try:
            return call()
        except Exception:
            logger.exception("Record fetch %s failed", getattr(call, "__name__", repr(call)))
            raise
