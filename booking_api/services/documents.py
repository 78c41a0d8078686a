from datetime import datetime, timezone
from typing import Any, Optional
import uuid

from sqlalchemy import select

from booking_api.database import session_scope
from booking_api.models.document import DocumentEntry


class DocumentStore:
    """JSON documents addressed by collection name and document id."""

    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        with session_scope() as session:
            entry = self._find(session, collection, doc_id)
            if entry is None:
                return None
            return dict(entry.data)

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        now = datetime.now(timezone.utc)
        with session_scope() as session:
            entry = self._find(session, collection, doc_id)
            if entry is None:
                session.add(
                    DocumentEntry(
                        collection=collection,
                        doc_id=doc_id,
                        data=dict(data),
                        created_at=now,
                        updated_at=now,
                    )
                )
                return
            # JSON columns only notice reassignment, not in-place mutation.
            entry.data = {**entry.data, **data} if merge else dict(data)
            entry.updated_at = now

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self.set(collection, doc_id, data)
        return doc_id

    def list(self, collection: str) -> list[dict[str, Any]]:
        with session_scope() as session:
            result = session.execute(
                select(DocumentEntry)
                .where(DocumentEntry.collection == collection)
                .order_by(DocumentEntry.id)
            )
            return [dict(entry.data) for entry in result.scalars().all()]

    def _find(self, session, collection: str, doc_id: str) -> Optional[DocumentEntry]:
        return session.execute(
            select(DocumentEntry).where(
                DocumentEntry.collection == collection,
                DocumentEntry.doc_id == doc_id,
            )
        ).scalar_one_or_none()


document_store = DocumentStore()
