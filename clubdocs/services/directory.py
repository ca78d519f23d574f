import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.document import DocumentCategory, DocumentTag

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Medical", "Medical certificates and fitness attestations", "#e74c3c"),
    ("Identity", "Identity cards and passports", "#3498db"),
    ("Licenses", "Federation licenses", "#2ecc71"),
    ("Insurance", "Insurance certificates", "#f39c12"),
    ("Consents", "Parental consents and waivers", "#9b59b6"),
]

DEFAULT_TAGS = [
    ("urgent", "#e74c3c"),
    ("competition", "#3498db"),
    ("minor", "#f1c40f"),
    ("renewal", "#1abc9c"),
]


class DirectoryService:
    """Reference data for classifying documents: categories and tags."""

    @staticmethod
    def list_categories(db: Session) -> List[DocumentCategory]:
        return list(db.execute(select(DocumentCategory).order_by(DocumentCategory.name)).scalars().all())

    @staticmethod
    def list_tags(db: Session) -> List[DocumentTag]:
        return list(db.execute(select(DocumentTag).order_by(DocumentTag.name)).scalars().all())

    @staticmethod
    def create_category(
        db: Session,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> DocumentCategory:
        category = DocumentCategory(name=name, description=description, color=color)
        db.add(category)
        db.commit()
        db.refresh(category)
        logger.info(f"Created document category {category.id} ({category.name})")
        return category

    @staticmethod
    def create_tag(db: Session, name: str, color: Optional[str] = None) -> DocumentTag:
        tag = DocumentTag(name=name, color=color)
        db.add(tag)
        db.commit()
        db.refresh(tag)
        logger.info(f"Created document tag {tag.id} ({tag.name})")
        return tag

    @staticmethod
    def seed_defaults(db: Session) -> int:
        created = 0
        existing_categories = {c.name for c in DirectoryService.list_categories(db)}
        for name, description, color in DEFAULT_CATEGORIES:
            if name not in existing_categories:
                db.add(DocumentCategory(name=name, description=description, color=color))
                created += 1
        existing_tags = {t.name for t in DirectoryService.list_tags(db)}
        for name, color in DEFAULT_TAGS:
            if name not in existing_tags:
                db.add(DocumentTag(name=name, color=color))
                created += 1
        db.commit()
        return created
