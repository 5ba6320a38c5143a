"""Document store client shared by the repositories"""
import logging
from copy import deepcopy
from typing import Dict, List, Optional

from domain.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """Minimal document store keyed by collection and document id.

    Documents go in and come out as deep copies, so an entity held by one
    caller never aliases the stored row. Each call is atomic per document;
    nothing spans documents.
    """

    def __init__(self, name: str = "rental_availability"):
        self.name = name
        self._collections: Dict[str, Dict[str, dict]] = {}
        self._connected = True

    # ==================== CONNECTION STATE ====================
    def connect(self) -> None:
        self._connected = True
        logger.info("Store %s connected", self.name)

    def disconnect(self) -> None:
        self._connected = False
        logger.warning("Store %s disconnected", self.name)

    def is_connected(self) -> bool:
        return self._connected

    def ensure_available(self) -> None:
        if not self._connected:
            raise StoreUnavailableError("Database is not available. Please try again in a moment.")

    # ==================== DOCUMENT OPERATIONS ====================
    def put(self, collection: str, doc_id: str, document: dict) -> dict:
        self.ensure_available()
        self._collections.setdefault(collection, {})[doc_id] = deepcopy(document)
        return deepcopy(document)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        self.ensure_available()
        document = self._collections.get(collection, {}).get(doc_id)
        return deepcopy(document) if document is not None else None

    def find(self, collection: str, **criteria) -> List[dict]:
        """Documents whose fields equal every given criterion"""
        self.ensure_available()
        return [
            deepcopy(doc) for doc in self._collections.get(collection, {}).values()
            if all(doc.get(field) == value for field, value in criteria.items())
        ]

    def delete(self, collection: str, doc_id: str) -> bool:
        self.ensure_available()
        return self._collections.get(collection, {}).pop(doc_id, None) is not None

    def delete_many(self, collection: str, **criteria) -> int:
        self.ensure_available()
        documents = self._collections.get(collection, {})
        doomed = [
            doc_id for doc_id, doc in documents.items()
            if all(doc.get(field) == value for field, value in criteria.items())
        ]
        for doc_id in doomed:
            del documents[doc_id]
        return len(doomed)

    def clear(self) -> None:
        self._collections.clear()
