from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Dict, Protocol

from .errors import EstimateNotFound, RevisionConflict
from .models.estimate import Estimate


class EstimateStore(Protocol):
    def get_estimate(self, estimate_id: str) -> Estimate:
        ...

    def list_estimates(self, lead_id: str) -> list[Estimate]:
        ...

    def add_estimate(self, estimate: Estimate) -> Estimate:
        ...

    def save_estimate(self, estimate: Estimate, *, expected_revision: int) -> Estimate:
        ...

    def delete_estimate(self, estimate_id: str) -> None:
        ...


class InMemoryEstimateStore:
    def __init__(self) -> None:
        self._estimates: Dict[str, Estimate] = {}
        self._lock = threading.Lock()

    def get_estimate(self, estimate_id: str) -> Estimate:
        with self._lock:
            estimate = self._estimates.get(estimate_id)
            if estimate is None:
                raise EstimateNotFound(estimate_id)
            return estimate

    def list_estimates(self, lead_id: str) -> list[Estimate]:
        with self._lock:
            return [estimate for estimate in self._estimates.values() if estimate.lead_id == lead_id]

    def add_estimate(self, estimate: Estimate) -> Estimate:
        with self._lock:
            self._estimates[estimate.id] = estimate
            return estimate

    def save_estimate(self, estimate: Estimate, *, expected_revision: int) -> Estimate:
        with self._lock:
            current = self._estimates.get(estimate.id)
            if current is None:
                raise EstimateNotFound(estimate.id)
            if current.revision != expected_revision:
                raise RevisionConflict(estimate.id, expected_revision, current.revision)
            stored = estimate.model_copy(
                update={
                    "revision": current.revision + 1,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            self._estimates[estimate.id] = stored
            return stored

    def delete_estimate(self, estimate_id: str) -> None:
        with self._lock:
            if self._estimates.pop(estimate_id, None) is None:
                raise EstimateNotFound(estimate_id)


__all__ = ["EstimateStore", "InMemoryEstimateStore"]
