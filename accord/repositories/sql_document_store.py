from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from accord.entities.document import split_path
from accord.exc import StoreError
from accord.models.document import Document
from accord.repositories.document_store import NotifyingDocumentStore

if TYPE_CHECKING:
    from accord.models.base.session import Session
    from typing import Any, Dict, List, Optional, Tuple


class SQLDocumentStore(NotifyingDocumentStore):
    """Document store backed by the documents table.

    Each commit is one database transaction, so batch writes are atomic.  Any database error is
    rolled back and re-raised as StoreError.
    """

    def __init__(self, session):
        # type: (Session) -> None
        super().__init__()
        self.session = session

    def _load(self, path):
        # type: (str) -> Optional[Dict[str, Any]]
        collection, document_id = split_path(path)
        try:
            document = Document.get(self.session, collection=collection, document_id=document_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Reading {path} failed: {e}") from e
        return document.data if document else None

    def _load_collection(self, collection):
        # type: (str) -> Dict[str, Dict[str, Any]]
        try:
            documents = self.session.query(Document).filter_by(collection=collection).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Listing {collection} failed: {e}") from e
        return {document.document_id: document.data for document in documents}

    def _commit(self, changes):
        # type: (List[Tuple[str, Optional[Dict[str, Any]]]]) -> None
        try:
            for path, data in changes:
                collection, document_id = split_path(path)
                document = Document.get(
                    self.session, collection=collection, document_id=document_id
                )
                if data is None:
                    if document:
                        document.delete(self.session)
                elif document:
                    document.data = data
                else:
                    document = Document(collection=collection, document_id=document_id)
                    document.data = data
                    document.add(self.session)
            self.session.commit()
        except SQLAlchemyError as e:
            self._logger.exception("Committing %d document changes failed", len(changes))
            self.session.rollback()
            raise StoreError(f"Committing {len(changes)} document changes failed: {e}") from e
