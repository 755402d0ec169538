"""SQLAlchemy database models for uploaded PDFs and generated tests."""

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from testgen.db.database import Base


class Document(Base):
    """Uploaded PDF and its cached extracted text."""

    __tablename__ = "pdfs"

    id = Column(String, primary_key=True, index=True)
    owner_id = Column("user_id", String, nullable=False, index=True)
    original_name = Column(String, nullable=False)
    storage_path = Column("file_path", String, nullable=False)
    size_bytes = Column("file_size", BigInteger, nullable=True)
    extracted_text = Column(Text, nullable=True)  # overwritten on re-extraction
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    tests = relationship("GeneratedTest", back_populates="primary_document")

    def __repr__(self):
        return f"<Document(id={self.id}, name={self.original_name})>"


class GeneratedTest(Base):
    """Multiple-choice test generated from one or more documents."""

    __tablename__ = "tests"
    __table_args__ = (
        CheckConstraint("total_questions >= 1", name="ck_tests_total_questions"),
    )

    id = Column(String, primary_key=True, index=True)
    owner_id = Column("user_id", String, nullable=False, index=True)
    # First document of the batch; the full ordered batch is in source_document_ids
    pdf_id = Column(
        String, ForeignKey("pdfs.id", ondelete="CASCADE"), nullable=True, index=True
    )
    source_document_ids = Column(JSON, nullable=False, default=list)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    language = Column(String, nullable=False, default="es")
    questions = Column(JSON, nullable=False)
    total_questions = Column(Integer, nullable=False)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    primary_document = relationship("Document", back_populates="tests")

    def __repr__(self):
        return f"<GeneratedTest(id={self.id}, questions={self.total_questions})>"
