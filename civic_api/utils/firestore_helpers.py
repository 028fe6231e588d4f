"""
Firestore query helpers shared by the services.

NOTE: firebase_admin still accepts positional where() arguments. The
deprecation warning is just a warning, so we keep positional args for
reliability across the SDK and the in-memory mock.
"""

from typing import Dict, Iterator, Optional

from civic_api.core.errors import NotFoundError


def where_filter(query, field_path: str, op_string: str, value):
    """
    Apply a where clause to a collection or query.

    Usage:
        query = where_filter(collection, "status", "==", "pending")
        query = where_filter(query, "category", "==", "pothole")
    """
    return query.where(field_path, op_string, value)


def snapshot_to_dict(doc) -> Optional[Dict]:
    """Convert a document snapshot into a plain dict with its id, or None if missing."""
    if not doc.exists:
        return None
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def stream_documents(query) -> Iterator[Dict]:
    """Stream a query as dicts (with ids), skipping snapshots of absent documents."""
    for doc in query.stream():
        data = snapshot_to_dict(doc)
        if data is not None:
            yield data


def get_or_404(collection_ref, doc_id: str, label: str = "Resource") -> Dict:
    """Fetch a document as a dict, raising NotFoundError when it does not exist."""
    data = snapshot_to_dict(collection_ref.document(doc_id).get()) if doc_id else None
    if data is None:
        raise NotFoundError(f"{label} not found")
    return data
