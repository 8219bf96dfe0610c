"""Remote collection synchronisation shared by tasks, sessions and chat."""

from .store import Document, DocumentStore, SQLiteDocumentStore, StoreError
from .subscription import Subscription, parse_documents, subscribe_records
from .writes import write_guard

__all__ = [
    "Document",
    "DocumentStore",
    "SQLiteDocumentStore",
    "StoreError",
    "Subscription",
    "parse_documents",
    "subscribe_records",
    "write_guard",
]
