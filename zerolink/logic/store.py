"""Saved logic store for ZeroLink.

This module keeps the user's saved documents in a JSON file, newest
first, keyed by a generated id. Entries are validated on load with the
same schema as scanned documents.
"""
import logging
import uuid
from typing import List, Optional

from zerolink.core.errors import LogicValidationError
from zerolink.core.utils import load_json_file, save_json_file
from zerolink.logic.schema import LogicDocument, parse_document


class LogicStore:
    """Manages loading and saving of documents on disk."""

    def __init__(self, path: str):
        self.path = path
        self._documents: List[LogicDocument] = []
        self.reload()

    def reload(self) -> None:
        """Reload documents from disk, skipping entries that do not validate."""
        data = load_json_file(self.path, {"logics": []})
        items = data.get("logics", []) if isinstance(data, dict) else []

        documents = []
        for i, item in enumerate(items):
            try:
                documents.append(parse_document(item))
            except LogicValidationError as e:
                logging.warning("Skipping saved logic #%d in '%s': %s", i, self.path, e)
        self._documents = documents
        logging.debug("Loaded %d saved logic(s) from %s", len(documents), self.path)

    def list(self) -> List[LogicDocument]:
        """Return saved documents, newest first."""
        return list(self._documents)

    def get(self, doc_id: str) -> Optional[LogicDocument]:
        """Return the document with this id, or None."""
        for document in self._documents:
            if document.id == doc_id:
                return document
        return None

    def save(self, document: LogicDocument) -> LogicDocument:
        """Insert or replace a document and persist the store.

        A document without an id gets a new one and goes to the front;
        a document with a known id replaces the stored version in place.

        Returns:
            The stored document (with its id)
        """
        stored = document if document.id else document.with_id(str(uuid.uuid4()))
        for i, existing in enumerate(self._documents):
            if existing.id == stored.id:
                self._documents[i] = stored
                break
        else:
            self._documents.insert(0, stored)

        self._persist()
        logging.info("Saved logic '%s' (%s)", stored.name, stored.id)
        return stored

    def delete(self, doc_id: str) -> bool:
        """Remove a document by id.

        Returns:
            True if a document was removed
        """
        remaining = [d for d in self._documents if d.id != doc_id]
        if len(remaining) == len(self._documents):
            return False
        self._documents = remaining
        self._persist()
        logging.info("Deleted saved logic %s", doc_id)
        return True

    def _persist(self) -> None:
        save_json_file(self.path, {"logics": [d.to_dict() for d in self._documents]})
