"""Document repository protocol and shared query helpers."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

Document = Dict[str, Any]

SUPPORTED_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">=", "in", "is_null"})


class RepositoryError(Exception):
    """Raised when the storage backend fails.

    Attributes:
        error_code: Backend error code when available
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class DocumentNotFoundError(RepositoryError):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} not found", error_code="NOT_FOUND")
        self.collection = collection
        self.doc_id = doc_id


@dataclass(frozen=True)
class FieldFilter:
    """Single field predicate.

    Operators: ``==``, ``!=``, ``<``, ``<=``, ``>``, ``>=``, ``in`` (value is a
    collection) and ``is_null`` (value is a bool; True matches missing or None).
    Range operators never match documents where the field is missing or None.

    Example:
        FieldFilter("status", "==", "pending")
        FieldFilter("read_at", "is_null", True)
    """

    field: str
    op: str
    value: Any = None

    def __post_init__(self) -> None:
        if self.op not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


class DocumentRepository(Protocol):
    """Storage interface for document collections.

    Implementations must make ``conditional_update`` atomic: when two callers
    race on the same expectation, exactly one of them gets True.
    """

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return a copy of the document, or None."""
        ...

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Create or replace a document."""
        ...

    def update(
        self, collection: str, doc_id: str, fields: Mapping[str, Any]
    ) -> None:
        """Merge top-level fields into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        ...

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        ...

    def batch_set(self, collection: str, docs: Mapping[str, Mapping[str, Any]]) -> None:
        """Create or replace several documents in one write."""
        ...

    def batch_update(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> None:
        """Merge fields into several existing documents in one write."""
        ...

    def conditional_update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any],
    ) -> bool:
        """Atomically update a document if every expected field matches.

        An expected value of None matches a missing or None field.

        Returns:
            True if the update was applied, False if the document is missing
            or any expectation failed.
        """
        ...

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Return documents matching all filters."""
        ...

    def count(self, collection: str, filters: Sequence[FieldFilter] = ()) -> int:
        """Count documents matching all filters."""
        ...


def matches(doc: Mapping[str, Any], filters: Iterable[FieldFilter]) -> bool:
    """Evaluate filters against a plain document."""
    for f in filters:
        value = doc.get(f.field)
        if f.op == "is_null":
            if (value is None) != bool(f.value):
                return False
            continue
        if f.op == "==":
            if value != f.value:
                return False
            continue
        if f.op == "!=":
            if value == f.value:
                return False
            continue
        if f.op == "in":
            if value not in f.value:
                return False
            continue
        if value is None:
            return False
        if f.op == "<" and not value < f.value:
            return False
        if f.op == "<=" and not value <= f.value:
            return False
        if f.op == ">" and not value > f.value:
            return False
        if f.op == ">=" and not value >= f.value:
            return False
    return True


def sort_documents(
    docs: List[Document], order_by: Optional[str], descending: bool
) -> List[Document]:
    """Sort documents by a field; documents missing the field sort last."""
    if not order_by:
        return docs
    present = [d for d in docs if d.get(order_by) is not None]
    missing = [d for d in docs if d.get(order_by) is None]
    present.sort(key=lambda d: d[order_by], reverse=descending)
    return present + missing
