from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

# signed ranges of INTEGER and BIGINT columns
INT_MAX = 2**31 - 1
BIGINT_MAX = 2**63 - 1


def fits_integer(n: int) -> bool:
    return -INT_MAX - 1 <= n <= INT_MAX


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str) -> Engine:
    kwargs: dict = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # in-memory databases live on one connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def db_dependency(SessionLocal):
    def get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()
    return get_db
