from __future__ import annotations

import logging
from datetime import datetime, timezone

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .errors import EstimateNotFound, RevisionConflict
from .models.estimate import Estimate

logger = logging.getLogger(__name__)


class FirestoreEstimateStore:
    """Firestore-backed estimate store for production use.

    Each estimate is one document holding its line items; ``revision`` is
    checked and bumped inside a transaction on every save.
    """

    COLLECTION_NAME = "detailed_estimates"

    def __init__(self, project_id: str | None = None) -> None:
        self._db = firestore.Client(project=project_id)
        self._collection = self._db.collection(self.COLLECTION_NAME)

    def get_estimate(self, estimate_id: str) -> Estimate:
        doc = self._collection.document(estimate_id).get()
        if not doc.exists:
            raise EstimateNotFound(estimate_id)
        return self._from_firestore_dict(doc.id, doc.to_dict())

    def list_estimates(self, lead_id: str) -> list[Estimate]:
        query = self._collection.where(filter=FieldFilter("lead_id", "==", lead_id))
        return [self._from_firestore_dict(doc.id, doc.to_dict()) for doc in query.stream()]

    def add_estimate(self, estimate: Estimate) -> Estimate:
        self._collection.document(estimate.id).set(self._to_firestore_dict(estimate))
        logger.info(
            "Created estimate",
            extra={
                "estimate_id": estimate.id,
                "lead_id": estimate.lead_id,
                "version": estimate.version,
            },
        )
        return estimate

    def save_estimate(self, estimate: Estimate, *, expected_revision: int) -> Estimate:
        doc_ref = self._collection.document(estimate.id)
        transaction = self._db.transaction()
        save = firestore.transactional(_check_revision_and_set)
        stored = save(transaction, doc_ref, estimate, expected_revision)
        logger.info(
            "Saved estimate",
            extra={"estimate_id": estimate.id, "revision": stored.revision},
        )
        return stored

    def delete_estimate(self, estimate_id: str) -> None:
        doc_ref = self._collection.document(estimate_id)
        if not doc_ref.get().exists:
            raise EstimateNotFound(estimate_id)
        doc_ref.delete()

    @staticmethod
    def _to_firestore_dict(estimate: Estimate) -> dict:
        data = estimate.model_dump(mode="json")
        data.pop("id", None)
        return data

    @staticmethod
    def _from_firestore_dict(estimate_id: str, data: dict) -> Estimate:
        return Estimate.model_validate({**data, "id": estimate_id})


def _check_revision_and_set(
    transaction, doc_ref, estimate: Estimate, expected_revision: int
) -> Estimate:
    snapshot = doc_ref.get(transaction=transaction)
    if not snapshot.exists:
        raise EstimateNotFound(estimate.id)
    current_revision = snapshot.to_dict().get("revision", 0)
    if current_revision != expected_revision:
        raise RevisionConflict(estimate.id, expected_revision, current_revision)
    stored = estimate.model_copy(
        update={"revision": current_revision + 1, "updated_at": datetime.now(timezone.utc)}
    )
    transaction.set(doc_ref, FirestoreEstimateStore._to_firestore_dict(stored))
    return stored


__all__ = ["FirestoreEstimateStore"]
