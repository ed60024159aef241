"""
Course bank search: turns optional filters into SQLAlchemy statements.

The same condition list feeds both the COUNT statement and the paginated
SELECT, so the two always agree on what matches; only LIMIT/OFFSET differ.

    conditions = build_conditions(params, caller)
    total = db.scalar(count_statement(conditions))
    rows = db.scalars(page_statement(conditions, params)).all()
"""
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import ColumnElement, Select, func, or_, select

from shared.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from shared.database import BIGINT_MAX, fits_integer
from shared.identity import Caller
from .models import CourseMapping

# sentinel the frontend sends for "no constraint"
ALL = "all"

SEARCHABLE_COLUMNS = (
    CourseMapping.home_course_code,
    CourseMapping.home_course_name,
    CourseMapping.partner_course_code,
    CourseMapping.partner_course_name,
    CourseMapping.partner_university,
    CourseMapping.partner_country,
)


def _optional(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    s = val.strip()
    if not s or s.lower() == ALL:
        return None
    return s


def parse_int(val: Optional[str]) -> Optional[int]:
    s = _optional(val)
    if s is None:
        return None
    try:
        return int(s)
    except ValueError:
        return None


def _parse_float(val: Optional[str]) -> Optional[float]:
    s = _optional(val)
    if s is None:
        return None
    try:
        out = float(s.replace(",", "."))
    except ValueError:
        return None
    return out if math.isfinite(out) else None


def _parse_id(val: Optional[str]) -> Optional[int]:
    n = parse_int(val)
    return n if n is not None and fits_integer(n) else None


def clamp_limit(n: Optional[int], default: int, max_limit: int) -> int:
    if n is None:
        return min(default, max_limit)
    return min(max(1, n), max_limit)


def clamp_page(n: Optional[int], limit: int) -> int:
    # keep (page - 1) * limit inside a BIGINT offset
    if n is None:
        return 1
    return min(max(1, n), BIGINT_MAX // limit + 1)


@dataclass(frozen=True)
class CourseSearch:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: Optional[str] = None
    university: Optional[str] = None
    country: Optional[str] = None
    ects: Optional[float] = None
    verified_only: bool = False
    owner_id: Optional[int] = None

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_query(
        cls,
        *,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        search: Optional[str] = None,
        university: Optional[str] = None,
        country: Optional[str] = None,
        ects: Optional[str] = None,
        verified: Optional[str] = None,
        user_id: Optional[str] = None,
        default_limit: int = DEFAULT_PAGE_SIZE,
        max_limit: int = MAX_PAGE_SIZE,
    ) -> "CourseSearch":
        """Raw query-string values in, clamped and typed filters out. Never raises on bad input."""
        n = clamp_limit(parse_int(limit), default_limit, max_limit)
        term = (search or "").strip()
        return cls(
            page=clamp_page(parse_int(page), n),
            limit=n,
            search=term or None,
            university=_optional(university),
            country=_optional(country),
            ects=_parse_float(ects),
            verified_only=(verified or "").strip().lower() == "true",
            owner_id=_parse_id(user_id),
        )


def visibility_clause(caller: Optional[Caller]) -> Optional[ColumnElement[bool]]:
    if caller is not None and caller.is_admin:
        return None
    if caller is not None and caller.user_id is not None:
        return or_(CourseMapping.approved.is_(True), CourseMapping.user_id == caller.user_id)
    return CourseMapping.approved.is_(True)


def search_clause(term: str) -> ColumnElement[bool]:
    # autoescape makes % and _ in the term match literally
    return or_(*(col.icontains(term, autoescape=True) for col in SEARCHABLE_COLUMNS))


def build_conditions(params: CourseSearch, caller: Optional[Caller]) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []

    visible = visibility_clause(caller)
    if visible is not None:
        conditions.append(visible)

    if params.owner_id is not None:
        conditions.append(CourseMapping.user_id == params.owner_id)
    if params.search:
        conditions.append(search_clause(params.search))
    if params.university is not None:
        conditions.append(CourseMapping.partner_university == params.university)
    if params.country is not None:
        conditions.append(CourseMapping.partner_country == params.country)
    if params.ects is not None:
        conditions.append(CourseMapping.ects == params.ects)
    if params.verified_only:
        conditions.append(CourseMapping.verified.is_(True))

    return conditions


def count_statement(conditions: list[ColumnElement[bool]]) -> Select:
    stmt = select(func.count()).select_from(CourseMapping)
    if conditions:
        stmt = stmt.where(*conditions)
    return stmt


def page_statement(conditions: list[ColumnElement[bool]], params: CourseSearch) -> Select:
    stmt = select(CourseMapping)
    if conditions:
        stmt = stmt.where(*conditions)
    return stmt.order_by(CourseMapping.id.desc()).limit(params.limit).offset(params.offset)


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0
