"""Multi-criteria document search.

Every filter is optional and the present ones are AND-combined. Only the
shape of the statement (which WHERE terms, which ORDER BY) varies with the
input; every value ends up as a bound parameter.

Recognized keys (the wire contract used by the admin UI):

    athlete_id     exact match
    document_type  exact match
    category_id    exact match, "all" disables the filter
    status         exact match on validation_status, "all" disables the filter
    search         case-insensitive substring of file_name or notes
    tag_ids        documents carrying ANY of the listed tags
    sort           name_asc | name_desc | date_asc | date_desc | expiry_asc | expiry_desc
    limit          maximum number of results
"""
from enum import Enum
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ValidationError, field_validator
from sqlalchemy import or_, select

from ..models.document import Document, document_tag_relations
from .documents import InvalidDocumentInputError

ALL_SENTINEL = "all"


class SortOrder(str, Enum):
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    DATE_ASC = "date_asc"
    DATE_DESC = "date_desc"
    EXPIRY_ASC = "expiry_asc"
    EXPIRY_DESC = "expiry_desc"


SORT_COLUMNS = {
    SortOrder.NAME_ASC: Document.file_name.asc(),
    SortOrder.NAME_DESC: Document.file_name.desc(),
    SortOrder.DATE_ASC: Document.uploaded_at.asc(),
    SortOrder.DATE_DESC: Document.uploaded_at.desc(),
    SortOrder.EXPIRY_ASC: Document.expiry_date.asc().nulls_last(),
    SortOrder.EXPIRY_DESC: Document.expiry_date.desc().nulls_last(),
}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class DocumentSearchFilters(BaseModel):
    athlete_id: Optional[int] = None
    document_type: Optional[str] = None
    category_id: Optional[int] = None
    status: Optional[str] = None
    search: Optional[str] = None
    tag_ids: List[int] = []
    sort: SortOrder = SortOrder.DATE_DESC
    limit: Optional[int] = None

    @field_validator("athlete_id", "document_type", "search", "limit", mode="before")
    @classmethod
    def empty_is_absent(cls, v):
        return _blank_to_none(v)

    @field_validator("category_id", "status", mode="before")
    @classmethod
    def all_is_absent(cls, v):
        v = _blank_to_none(v)
        if isinstance(v, str) and v.strip().lower() == ALL_SENTINEL:
            return None
        return v

    @field_validator("tag_ids", mode="before")
    @classmethod
    def split_tag_ids(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("sort", mode="before")
    @classmethod
    def unknown_sort_is_default(cls, v):
        try:
            return SortOrder(v)
        except ValueError:
            return SortOrder.DATE_DESC

    @field_validator("limit")
    @classmethod
    def limit_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("limit must be positive")
        return v

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "DocumentSearchFilters":
        """Build filters from raw query parameters, ignoring unknown keys."""
        known = {key: params[key] for key in cls.model_fields if key in params}
        if "tag_ids" in known and hasattr(params, "getlist"):
            # ?tag_ids=5&tag_ids=7 is the same as ?tag_ids=5,7
            repeated = params.getlist("tag_ids")
            if len(repeated) > 1:
                known["tag_ids"] = ",".join(repeated)
        try:
            return cls(**known)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise InvalidDocumentInputError(f"Invalid search filters: {problems}") from e


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_search_query(filters: DocumentSearchFilters):
    query = select(Document)

    if filters.athlete_id is not None:
        query = query.where(Document.athlete_id == filters.athlete_id)

    if filters.document_type is not None:
        query = query.where(Document.document_type == filters.document_type)

    if filters.category_id is not None:
        query = query.where(Document.category_id == filters.category_id)

    if filters.status is not None:
        query = query.where(Document.validation_status == filters.status)

    if filters.search is not None:
        pattern = f"%{_escape_like(filters.search)}%"
        query = query.where(
            or_(
                Document.file_name.ilike(pattern, escape="\\"),
                Document.notes.ilike(pattern, escape="\\"),
            )
        )

    if filters.tag_ids:
        tagged = select(document_tag_relations.c.document_id).where(
            document_tag_relations.c.tag_id.in_(filters.tag_ids)
        )
        query = query.where(Document.id.in_(tagged))

    query = query.order_by(SORT_COLUMNS[filters.sort], Document.id.desc())

    if filters.limit is not None:
        query = query.limit(filters.limit)

    return query
