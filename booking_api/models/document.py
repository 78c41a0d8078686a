from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from booking_api.database import Base


class DocumentEntry(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True)
    collection = Column(String(64), nullable=False, index=True)
    doc_id = Column(String(255), nullable=False)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc"),
    )
