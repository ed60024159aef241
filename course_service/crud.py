import logging
from datetime import date
from typing import Optional

from sqlalchemy import case, distinct, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.database import fits_integer
from shared.identity import Caller
from .models import CourseMapping, HomeCourse
from .search import CourseSearch, build_conditions, count_statement, page_statement, visibility_clause

logger = logging.getLogger("course-service")


class DuplicateMappingError(ValueError):
    """Same home course, partner university and partner course already mapped."""


def search_mappings(db: Session, params: CourseSearch, caller: Optional[Caller]) -> tuple[list[CourseMapping], int]:
    conditions = build_conditions(params, caller)
    total = db.scalar(count_statement(conditions)) or 0
    rows = db.scalars(page_statement(conditions, params)).all()
    return list(rows), int(total)


def get_mapping(db: Session, mapping_id: int) -> CourseMapping | None:
    if not fits_integer(mapping_id):
        return None
    return db.get(CourseMapping, mapping_id)


def mapping_exists(db: Session, home_code: str, partner_code: str, university: str) -> bool:
    stmt = (
        select(CourseMapping.id)
        .where(
            CourseMapping.home_course_code == home_code,
            CourseMapping.partner_course_code == partner_code,
            CourseMapping.partner_university == university,
        )
        .limit(1)
    )
    return db.scalar(stmt) is not None


def ensure_home_course(db: Session, code: str, name: str, credits: float | None) -> HomeCourse:
    hc = db.get(HomeCourse, code)
    if hc is None:
        hc = HomeCourse(code=code, name=name, credits=credits)
        db.add(hc)
    return hc


UNIQUE_VIOLATION = "23505"


def _is_unique_violation(e: IntegrityError) -> bool:
    orig = e.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code == UNIQUE_VIOLATION
    # sqlite: "UNIQUE constraint failed: ..."
    return "unique" in str(orig).lower()


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if not _is_unique_violation(e):
            raise
        raise DuplicateMappingError("This course mapping already exists") from e


def create_mapping(db: Session, payload: dict, caller: Optional[Caller]) -> CourseMapping:
    """
    Admin submissions are verified and approved immediately; everyone else's
    wait in the moderation queue.
    """
    is_admin = bool(caller and caller.is_admin)

    ensure_home_course(db, payload["home_course_code"], payload["home_course_name"], payload.get("ects"))

    m = CourseMapping(
        **payload,
        verified=is_admin,
        approved=is_admin,
        approval_date=date.today() if is_admin else None,
        user_id=caller.user_id if caller else None,
    )
    db.add(m)
    _commit(db)
    db.refresh(m)
    logger.info("Created course mapping %s (%s -> %s @ %s, approved=%s)",
                m.id, m.home_course_code, m.partner_course_code, m.partner_university, m.approved)
    return m


def update_mapping(db: Session, mapping_id: int, payload: dict) -> CourseMapping | None:
    """Approval and creation dates are left untouched."""
    m = get_mapping(db, mapping_id)
    if not m:
        return None

    ensure_home_course(db, payload["home_course_code"], payload["home_course_name"], payload.get("ects"))

    for field, value in payload.items():
        if hasattr(m, field):
            setattr(m, field, value)

    _commit(db)
    db.refresh(m)
    logger.info("Updated course mapping %s", m.id)
    return m


def approve_mapping(db: Session, mapping_id: int) -> CourseMapping | None:
    m = get_mapping(db, mapping_id)
    if not m:
        return None
    m.approved = True
    m.approval_date = date.today()
    db.commit()
    db.refresh(m)
    logger.info("Approved course mapping %s", m.id)
    return m


def delete_mapping(db: Session, mapping_id: int) -> bool:
    m = get_mapping(db, mapping_id)
    if not m:
        return False
    db.delete(m)
    db.commit()
    logger.info("Deleted course mapping %s", mapping_id)
    return True


def list_pending(db: Session) -> list[CourseMapping]:
    stmt = (
        select(CourseMapping)
        .where(CourseMapping.approved.is_(False))
        .order_by(CourseMapping.created_at.desc(), CourseMapping.id.desc())
    )
    return list(db.scalars(stmt).all())


def filter_options(db: Session, caller: Optional[Caller]) -> dict:
    visible = visibility_clause(caller)

    def _distinct(*cols, where=()):
        stmt = select(*cols).distinct()
        if visible is not None:
            stmt = stmt.where(visible)
        for cond in where:
            stmt = stmt.where(cond)
        return stmt.order_by(*cols)

    universities = db.scalars(_distinct(CourseMapping.partner_university)).all()
    countries = db.scalars(_distinct(CourseMapping.partner_country)).all()
    ects = db.scalars(_distinct(CourseMapping.ects, where=(CourseMapping.ects.is_not(None),))).all()
    pairs = db.execute(
        _distinct(CourseMapping.partner_country, CourseMapping.partner_university)
    ).all()

    return {
        "universities": [u for u in universities if u],
        "countries": [c for c in countries if c],
        "ects": sorted(float(e) for e in ects if e),
        "university_country_pairs": [
            {"university": uni, "country": country} for country, uni in pairs if uni and country
        ],
    }


def stats(db: Session) -> dict:
    row = db.execute(
        select(
            func.count(CourseMapping.id),
            func.sum(case((CourseMapping.approved.is_(True), 1), else_=0)),
            func.count(distinct(CourseMapping.partner_university)),
        )
    ).one()
    total, approved, universities = int(row[0] or 0), int(row[1] or 0), int(row[2] or 0)
    return {"courses": total, "approved": approved, "pending": total - approved, "universities": universities}


def search_home_courses(db: Session, q: str, limit: int = 10) -> list[HomeCourse]:
    term = q.strip()
    if not term:
        return []
    code = func.upper(HomeCourse.code)
    upper = term.upper()
    prefix_code = HomeCourse.code.istartswith(term, autoescape=True)
    prefix_name = HomeCourse.name.istartswith(term, autoescape=True)
    stmt = (
        select(HomeCourse)
        .where(or_(prefix_code, HomeCourse.name.icontains(term, autoescape=True)))
        .order_by(
            case(
                (code == upper, 1),
                (prefix_code, 2),
                (prefix_name, 3),
                else_=4,
            ),
            HomeCourse.code,
        )
        .limit(limit)
    )
    return list(db.scalars(stmt).all())
