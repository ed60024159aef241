import re
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from .models import CourseMapping, HomeCourse

_WS_RE = re.compile(r"\s+")


def normalize_code(v: str) -> str:
    """'tma 4130' -> 'TMA4130'"""
    return _WS_RE.sub("", v or "").upper()


def _parse_ects(v):
    # users type both 7,5 and 7.5
    if isinstance(v, str):
        return v.strip().replace(",", ".")
    return v


class CourseMappingIn(BaseModel):
    home_course_code: str = Field(min_length=1, max_length=20)
    home_course_name: str = Field(min_length=1, max_length=255)
    partner_university: str = Field(min_length=1, max_length=255)
    partner_country: str = Field(min_length=1, max_length=100)
    partner_course_code: str = Field(min_length=1, max_length=50)
    partner_course_name: str = Field(default="", max_length=255)
    ects: float = Field(gt=0, le=60)
    semester: str | None = Field(default=None, max_length=50)

    @field_validator("home_course_code", "partner_course_code", mode="before")
    @classmethod
    def _codes(cls, v):
        return normalize_code(v) if isinstance(v, str) else v

    @field_validator("home_course_name", "partner_course_name", "partner_university", "partner_country", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("ects", mode="before")
    @classmethod
    def _ects(cls, v):
        return _parse_ects(v)


class CourseMappingUpdate(BaseModel):
    home_course_code: str = Field(min_length=1, max_length=20)
    home_course_name: str = Field(min_length=1, max_length=255)
    partner_course_code: str = Field(min_length=1, max_length=50)
    partner_course_name: str = Field(default="", max_length=255)
    ects: float = Field(gt=0, le=60)
    semester: str | None = Field(default=None, max_length=50)

    @field_validator("home_course_code", "partner_course_code", mode="before")
    @classmethod
    def _codes(cls, v):
        return normalize_code(v) if isinstance(v, str) else v

    @field_validator("home_course_name", "partner_course_name", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("ects", mode="before")
    @classmethod
    def _ects(cls, v):
        return _parse_ects(v)


class ApproveIn(BaseModel):
    course_id: int = Field(gt=0)


class CourseMappingOut(BaseModel):
    id: int
    user_id: int | None
    home_course_code: str
    home_course_name: str
    partner_university: str
    partner_country: str
    partner_course_code: str
    partner_course_name: str
    ects: float | None
    semester: str | None
    verified: bool
    approved: bool
    wiki_url: str | None
    decision_date: date | None

    @classmethod
    def from_row(cls, m: CourseMapping) -> "CourseMappingOut":
        # imported mappings with a wiki link carry their own decision date
        if m.wiki_url:
            decided = m.approval_date
        else:
            decided = m.approval_date or (m.created_at.date() if m.created_at else None)
        return cls(
            id=m.id,
            user_id=m.user_id,
            home_course_code=m.home_course_code,
            home_course_name=m.home_course_name,
            partner_university=m.partner_university,
            partner_country=m.partner_country,
            partner_course_code=m.partner_course_code,
            partner_course_name=m.partner_course_name,
            ects=float(m.ects) if m.ects is not None else None,
            semester=m.semester,
            verified=bool(m.verified),
            approved=bool(m.approved),
            wiki_url=m.wiki_url,
            decision_date=decided,
        )


class PendingMappingOut(BaseModel):
    id: int
    user_id: int | None
    home_course_code: str
    home_course_name: str
    partner_university: str
    partner_country: str
    partner_course_code: str
    partner_course_name: str
    ects: float | None
    semester: str | None
    created_at: datetime | None

    @classmethod
    def from_row(cls, m: CourseMapping) -> "PendingMappingOut":
        return cls(
            id=m.id,
            user_id=m.user_id,
            home_course_code=m.home_course_code,
            home_course_name=m.home_course_name,
            partner_university=m.partner_university,
            partner_country=m.partner_country,
            partner_course_code=m.partner_course_code,
            partner_course_name=m.partner_course_name,
            ects=float(m.ects) if m.ects is not None else None,
            semester=m.semester,
            created_at=m.created_at,
        )


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class CourseSearchOut(BaseModel):
    courses: list[CourseMappingOut]
    pagination: PaginationOut


class UniversityCountryOut(BaseModel):
    university: str
    country: str


class FilterOptionsOut(BaseModel):
    universities: list[str]
    countries: list[str]
    ects: list[float]
    university_country_pairs: list[UniversityCountryOut]


class CheckOut(BaseModel):
    exists: bool


class StatsOut(BaseModel):
    courses: int
    approved: int
    pending: int
    universities: int


class HomeCourseOut(BaseModel):
    code: str
    name: str
    credits: float | None

    @classmethod
    def from_row(cls, c: HomeCourse) -> "HomeCourseOut":
        return cls(code=c.code, name=c.name, credits=float(c.credits) if c.credits is not None else None)
