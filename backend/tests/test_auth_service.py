"""Tests for admin login and token validation."""

from pathlib import Path

import pytest

from conftest import make_settings
from threatscope.errors import UnauthorizedError
from threatscope.services.auth_service import AuthService


@pytest.fixture
def auth(tmp_path: Path) -> AuthService:
    return AuthService(make_settings(tmp_path, admin_username="analyst", admin_password="s3cret"))


class TestAuthService:
    def test_login_round_trip(self, auth: AuthService) -> None:
        token = auth.login("analyst", "s3cret")
        assert auth.verify_token(token) == "analyst"

    @pytest.mark.parametrize(("username", "password"), [("analyst", "wrong"), ("admin", "s3cret")])
    def test_bad_credentials(self, auth: AuthService, username: str, password: str) -> None:
        with pytest.raises(UnauthorizedError, match="invalid credentials"):
            auth.login(username, password)

    def test_expired_token(self, tmp_path: Path) -> None:
        auth = AuthService(make_settings(tmp_path, jwt_expire_minutes=-1))
        token = auth.create_token("admin")
        with pytest.raises(UnauthorizedError, match="Invalid token"):
            auth.verify_token(token)

    def test_foreign_signature(self, auth: AuthService, tmp_path: Path) -> None:
        other = AuthService(make_settings(tmp_path, jwt_secret_key="another-secret"))
        with pytest.raises(UnauthorizedError):
            auth.verify_token(other.create_token("analyst"))
