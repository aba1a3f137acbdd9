"""Helpers for turning MongoDB documents into JSON-friendly dictionaries."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List

from bson import ObjectId


def _convert(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _convert(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_convert(item) for item in value]
    return value


def serialize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Rename ``_id`` to ``id`` and stringify ObjectIds and dates."""

    converted = _convert(dict(document))
    if "_id" in converted:
        converted = {"id": converted.pop("_id"), **converted}
    return converted


def serialize_documents(documents: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_document(document) for document in documents]
