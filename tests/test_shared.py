import pytest
from starlette.requests import Request

from shared.config import Settings
from shared.identity import Caller, current_caller


def _request(headers=None, user=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    req = Request(scope)
    if user is not None:
        req.state.user = user
    return req


class TestCurrentCaller:

    def test_anonymous(self):
        assert current_caller(_request()) is None

    def test_gateway_headers(self):
        assert current_caller(_request({"X-User-ID": "42"})) == Caller(user_id=42, is_admin=False)
        assert current_caller(_request({"X-User-ID": "1", "X-User-Role": "Admin"})) == Caller(user_id=1, is_admin=True)

    def test_non_numeric_id_is_anonymous(self):
        assert current_caller(_request({"X-User-ID": "abc"})) is None

    def test_out_of_range_id_is_anonymous(self):
        assert current_caller(_request({"X-User-ID": "99999999999999999999"})) is None
        assert current_caller(_request({"X-User-ID": "99999999999999999999", "X-User-Role": "admin"})) == Caller(
            user_id=None, is_admin=True
        )

    def test_admin_without_id(self):
        assert current_caller(_request({"X-User-Role": "admin"})) == Caller(user_id=None, is_admin=True)

    def test_request_state_wins_over_headers(self):
        req = _request({"X-User-ID": "42"}, user={"sub": "9", "role": "student"})
        assert current_caller(req) == Caller(user_id=9, is_admin=False)


class TestSettings:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        monkeypatch.setenv("MAX_PAGE_SIZE", "50")
        monkeypatch.setenv("DEFAULT_PAGE_SIZE", "80")
        monkeypatch.setenv("CREATE_TABLES", "false")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        s = Settings.from_env()
        assert s.database_url == "sqlite://"
        assert s.cors_origins == ["http://a.test", "http://b.test"]
        assert s.max_page_size == 50
        assert s.default_page_size == 50
        assert s.create_tables is False
        assert s.log_level == "DEBUG"

    def test_malformed_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        monkeypatch.setenv("MAX_PAGE_SIZE", "lots")
        monkeypatch.delenv("DEFAULT_PAGE_SIZE", raising=False)
        monkeypatch.delenv("CORS_ORIGINS", raising=False)

        s = Settings.from_env()
        assert s.max_page_size == 100
        assert s.default_page_size == 20
        assert s.cors_origins == ["*"]

    def test_missing_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "  ")
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            Settings.from_env()
