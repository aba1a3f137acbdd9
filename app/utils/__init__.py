"""Utility helpers."""
from .documents import serialize_document, serialize_documents  # noqa: F401
from .network import resolve_client_ip  # noqa: F401
