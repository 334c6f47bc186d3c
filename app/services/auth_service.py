import logging
import datetime
from typing import Optional

import bcrypt
import jwt

from app.services.user_store import UserStore
from app.utils.errors import AuthenticationError, InvalidCredentialsError, PPEServiceError, UserExistsError

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


class AuthService:
    def __init__(self, store: UserStore, secret: str, expires_minutes: int = 60):
        self.store = store
        self.secret = secret
        self.expires_minutes = expires_minutes

    def _require_secret(self):
        if not self.secret:
            logger.error("JWT_SECRET is not configured")
            raise PPEServiceError("Authentication is not configured")

    def signup(self, username: str, email: str, password: str) -> str:
        if self.store.find_by_username(username):
            raise UserExistsError()
        user_id = self.store.create_user(username, email, hash_password(password))
        logger.info("User registered: %s", username)
        return user_id

    def login(self, username: str, password: str) -> str:
        """
        Verify the password and return a signed token. Any failure raises
        InvalidCredentialsError without touching the logs.
        """
        self._require_secret()
        user = self.store.find_by_username(username)
        if not user or not check_password(password, user.get("password_hash", "")):
            logger.warning("Failed login for %s", username)
            raise InvalidCredentialsError()

        user_id = str(user["_id"])
        token = self.issue_token(user_id)
        self.store.record_login(user_id)
        logger.info("User logged in: %s", username)
        return token

    def issue_token(self, user_id: str) -> str:
        self._require_secret()
        now = datetime.datetime.now(datetime.timezone.utc)
        payload = {
            "user_id": user_id,
            "iat": now,
            "exp": now + datetime.timedelta(minutes=self.expires_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: Optional[str]) -> str:
        """Returns the user id carried by a valid token."""
        self._require_secret()
        if not token:
            raise AuthenticationError()
        try:
            payload = jwt.decode(token, self.secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")

        user_id = payload.get("user_id")
        if not user_id or not self.store.find_by_id(user_id):
            raise AuthenticationError("Unknown user")
        return user_id
