"""
Compliance Entities

Legal documents a subject must e-sign, per-subject assignments, and the
acceptances recorded against a document version.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel, UniqueConstraint

from ciam.domain.base import utcnow


class ComplianceDocument(SQLModel, table=True):
    """
    ComplianceDocument entity - a versioned legal document.

    Business Rules:
    - document_id is the stable identifier, version changes on republish
    - An acceptance of an older version does not satisfy the current one
    - applies_to_all=True obliges every subject, otherwise only subjects with
      a ComplianceObligation row
    - Inactive documents are never required
    """

    __tablename__ = "compliance_documents"

    document_id: str = Field(primary_key=True, max_length=100)
    title: str = Field(max_length=255)
    content: str = Field(default="")
    version: str = Field(default="1", max_length=20)

    mandatory: bool = Field(default=True)
    applies_to_all: bool = Field(default=False)
    active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))


class ComplianceObligation(SQLModel, table=True):
    """Assignment of a document to one subject"""

    __tablename__ = "compliance_obligations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    subject_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    document_id: str = Field(foreign_key="compliance_documents.document_id", max_length=100)
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        UniqueConstraint("subject_id", "document_id", name="uq_obligation_subject_document"),
    )


class ComplianceAcceptance(SQLModel, table=True):
    """
    ComplianceAcceptance entity - proof that a subject e-signed a version.

    Business Rules:
    - One row per (subject_id, document_id, document_version)
    - Re-accepting updates context_id, acceptance_ip and accepted_at in place
    """

    __tablename__ = "compliance_acceptances"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    subject_id: UUID = Field(foreign_key="users.id", nullable=False)
    document_id: str = Field(max_length=100)
    document_version: str = Field(max_length=20)

    context_id: Optional[UUID] = Field(default=None)
    acceptance_ip: Optional[str] = Field(default=None, max_length=64)
    accepted_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        UniqueConstraint(
            "subject_id", "document_id", "document_version",
            name="uq_acceptance_subject_document_version",
        ),
        Index("idx_acceptance_subject_id", "subject_id"),
    )
