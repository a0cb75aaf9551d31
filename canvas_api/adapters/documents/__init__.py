"""Document store adapters - source of truth for users and canvases."""

from canvas_api.adapters.documents.base import AbstractDocumentStore
from canvas_api.adapters.documents.in_memory import InMemoryDocumentStore

__all__ = ["AbstractDocumentStore", "InMemoryDocumentStore"]
