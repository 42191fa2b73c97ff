"""In-memory document repository."""

import copy
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

from infrastructure.logging import get_module_logger
from infrastructure.persistence.repository import (
    Document,
    DocumentNotFoundError,
    FieldFilter,
    matches,
    sort_documents,
)

logger = get_module_logger()


class InMemoryDocumentRepository:
    """Thread-safe in-memory implementation of DocumentRepository.

    Documents are deep-copied on the way in and out so callers never share
    mutable state with the store. A single lock guards every collection,
    which makes ``conditional_update`` atomic.

    Suitable for single-instance deployments, local development and tests.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._lock = threading.Lock()

    def _collection(self, name: str) -> Dict[str, Document]:
        return self._collections.setdefault(name, {})

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(dict(data))

    def update(
        self, collection: str, doc_id: str, fields: Mapping[str, Any]
    ) -> None:
        with self._lock:
            docs = self._collection(collection)
            if doc_id not in docs:
                raise DocumentNotFoundError(collection, doc_id)
            docs[doc_id].update(copy.deepcopy(dict(fields)))

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    def batch_set(self, collection: str, docs: Mapping[str, Mapping[str, Any]]) -> None:
        with self._lock:
            target = self._collection(collection)
            for doc_id, data in docs.items():
                target[doc_id] = copy.deepcopy(dict(data))
        logger.debug("batch_set_applied", collection=collection, count=len(docs))

    def batch_update(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> None:
        with self._lock:
            target = self._collection(collection)
            missing = [doc_id for doc_id in updates if doc_id not in target]
            if missing:
                raise DocumentNotFoundError(collection, missing[0])
            for doc_id, fields in updates.items():
                target[doc_id].update(copy.deepcopy(dict(fields)))
        logger.debug("batch_update_applied", collection=collection, count=len(updates))

    def conditional_update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any],
    ) -> bool:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            if doc is None:
                return False
            for key, value in expected.items():
                if doc.get(key) != value:
                    return False
            doc.update(copy.deepcopy(dict(fields)))
            return True

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        with self._lock:
            found = [
                copy.deepcopy(doc)
                for doc in self._collection(collection).values()
                if matches(doc, filters)
            ]
        found = sort_documents(found, order_by, descending)
        if limit is not None:
            found = found[:limit]
        return found

    def count(self, collection: str, filters: Sequence[FieldFilter] = ()) -> int:
        with self._lock:
            return sum(
                1 for doc in self._collection(collection).values() if matches(doc, filters)
            )
