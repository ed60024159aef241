import itertools

import pytest
from fastapi.testclient import TestClient

from shared.config import Settings
from shared.database import Base, make_engine, make_session_factory
from course_service.main import create_app
from course_service.models import CourseMapping

ADMIN = {"X-User-ID": "1", "X-User-Role": "admin"}
STUDENT = {"X-User-ID": "42"}
OTHER_STUDENT = {"X-User-ID": "7"}

_seq = itertools.count(1)


@pytest.fixture
def db():
    """Session on a fresh in-memory database."""
    engine = make_engine("sqlite://")
    Base.metadata.create_all(engine)
    SessionLocal = make_session_factory(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client():
    """FastAPI test client backed by in-memory SQLite."""
    app = create_app(Settings(database_url="sqlite://", default_page_size=20, max_page_size=100))
    with TestClient(app) as c:
        yield c


def make_mapping(db, **overrides) -> CourseMapping:
    n = next(_seq)
    values = {
        "home_course_code": f"TDT{4100 + n}",
        "home_course_name": f"Home course {n}",
        "partner_university": "ETH Zurich",
        "partner_country": "Switzerland",
        "partner_course_code": f"CS{100 + n}",
        "partner_course_name": f"Partner course {n}",
        "ects": 7.5,
        "semester": "Autumn",
        "verified": False,
        "approved": True,
        "user_id": None,
    }
    values.update(overrides)
    m = CourseMapping(**values)
    db.add(m)
    db.commit()
    db.refresh(m)
    return m


def mapping_payload(**overrides) -> dict:
    payload = {
        "home_course_code": "TMA4130",
        "home_course_name": "Matematikk 4N",
        "partner_university": "ETH Zürich",
        "partner_country": "Switzerland",
        "partner_course_code": "MATH301",
        "partner_course_name": "Analysis III",
        "ects": 7.5,
        "semester": "Autumn",
    }
    payload.update(overrides)
    return payload
