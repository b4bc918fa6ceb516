"""Auth service - admin login and bearer token validation."""

import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from threatscope.config import Settings
from threatscope.errors import UnauthorizedError


class AuthService:
    """Issues and checks HS256 JWTs for the configured admin account."""

    def __init__(self, settings: Settings):
        self.secret_key = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.expire_minutes = settings.jwt_expire_minutes
        self.admin_username = settings.admin_username
        self.admin_password = settings.admin_password

    def login(self, username: str, password: str) -> str:
        """
        Check credentials and issue a token.

        Raises:
            UnauthorizedError: Wrong username or password
        """
        valid_user = secrets.compare_digest(username.encode(), self.admin_username.encode())
        valid_password = secrets.compare_digest(password.encode(), self.admin_password.encode())
        if not (valid_user and valid_password):
            raise UnauthorizedError("invalid credentials")
        return self.create_token(username)

    def create_token(self, username: str) -> str:
        expires = datetime.now(UTC) + timedelta(minutes=self.expire_minutes)
        return jwt.encode({"sub": username, "exp": expires}, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> str:
        """Return the username in a valid token."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise UnauthorizedError("Invalid token") from e
        username = payload.get("sub")
        if not username:
            raise UnauthorizedError("Invalid token")
        return username
