from datetime import datetime
from enum import Enum
from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base


class DocumentType(str, Enum):
    MEDICAL_CERTIFICATE = "medical_certificate"
    IDENTITY_CARD = "identity_card"
    PHOTO = "photo"
    LICENSE = "license"
    INSURANCE = "insurance"
    PARENTAL_CONSENT = "parental_consent"
    OTHER = "other"


class ValidationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PermissionLevel(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    MANAGE = "manage"


document_tag_relations = Table(
    "document_tag_relations",
    Base.metadata,
    Column("document_id", Integer, ForeignKey("documents.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("document_tags.id"), primary_key=True),
)


class DocumentCategory(Base):
    __tablename__ = "document_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class DocumentTag(Base):
    __tablename__ = "document_tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    color = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    athlete_id = Column(Integer, ForeignKey("athletes.id"), nullable=False, index=True)
    document_type = Column(String(50), nullable=False)
    category_id = Column(Integer, ForeignKey("document_categories.id"), nullable=True, index=True)

    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    file_size_bytes = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(100), nullable=True)

    validation_status = Column(String(20), nullable=False, default=ValidationStatus.PENDING.value, index=True)
    validated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    validated_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    expiry_date = Column(Date, nullable=True, index=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    notes = Column(Text, nullable=True)

    athlete = relationship("Athlete", back_populates="documents")
    category = relationship("DocumentCategory")
    tags = relationship(
        "DocumentTag",
        secondary=document_tag_relations,
        order_by="DocumentTag.name",
    )
    versions = relationship(
        "DocumentVersion",
        back_populates="document",
        order_by="desc(DocumentVersion.version_number)",
    )
    shares = relationship(
        "DocumentShare",
        back_populates="document",
        order_by="desc(DocumentShare.shared_at)",
    )


class DocumentVersion(Base):
    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_document_versions_document_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    file_size_bytes = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    document = relationship("Document", back_populates="versions")


class DocumentShare(Base):
    __tablename__ = "document_shares"
    __table_args__ = (
        UniqueConstraint("document_id", "shared_with", name="uq_document_shares_document_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    shared_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    shared_with = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    permission_level = Column(String(20), nullable=False, default=PermissionLevel.VIEW.value)
    notes = Column(Text, nullable=True)
    shared_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    document = relationship("Document", back_populates="shares")

    def is_active(self, now: datetime = None) -> bool:
        if self.expires_at is None:
            return True
        return self.expires_at > (now or datetime.utcnow())
