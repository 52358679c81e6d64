"""
Credential storage and token authentication.

Passwords are stored as bcrypt hashes. A successful login yields an HS256 JWT
carrying the user id and name; tokens stay valid until they expire, there is
no revocation list.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import bcrypt
import jwt

from panel_hub.db import Database, storage_errors
from panel_hub.errors import AuthenticationError
from panel_hub.models import User, utcnow

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = 'HS256'
DEFAULT_TOKEN_TTL = timedelta(hours=24)

# bcrypt only looks at the first 72 bytes; longer passwords are refused
BCRYPT_MAX_BYTES = 72

INVALID_CREDENTIALS = "Invalid username or password"
INVALID_TOKEN = "Invalid or missing token"


@dataclass(frozen=True)
class StoredUser:
    id: int
    username: str
    password_hash: str

    def public(self) -> User:
        return User(id=self.id, username=self.username)


@dataclass(frozen=True)
class Claims:
    """Identity proven by a valid token"""
    user_id: int
    username: str
    issued_at: datetime
    expires_at: datetime


def hash_password(password: str, rounds: int = 12) -> str:
    encoded = password.encode('utf-8')
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password longer than {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of a password against a bcrypt hash"""
    encoded = password.encode('utf-8')
    if not password_hash or len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


class CredentialStore:
    """Owns the users table"""

    def __init__(self, db: Database, rounds: int = 12):
        self.db = db
        self.rounds = rounds

    def get_user_by_username(self, username: str) -> Optional[StoredUser]:
        query = "SELECT id, username, password_hash FROM users WHERE username = ?"

        with storage_errors("Failed to look up user"):
            with self.db.connection() as conn:
                row = self.db.fetchone(conn, query, (username,))

        return StoredUser(**row) if row is not None else None

    def create_user(self, username: str, password: str) -> Optional[int]:
        """
        Insert a user unless the username is taken.

        Returns: the new user's id, or None if the username already existed
        """
        query = """
            INSERT INTO users (username, password_hash)
            VALUES (?, ?)
            ON CONFLICT (username) DO NOTHING
            RETURNING id
        """
        password_hash = hash_password(password, rounds=self.rounds)

        with storage_errors("Failed to create user"):
            with self.db.connection() as conn:
                row = self.db.fetchone(conn, query, (username, password_hash))

        return row['id'] if row is not None else None

    def bootstrap_admin(self, username: str, password: str) -> bool:
        """
        Make sure the administrator account exists.

        Safe to run on every startup: an existing account is left untouched,
        including its password.

        Returns: True if the account was created by this call
        """
        if self.get_user_by_username(username) is not None:
            return False

        created = self.create_user(username, password) is not None
        if created:
            logger.info("Created administrator account", extra={'context': {'username': username}})
        return created


class AuthService:
    """Verifies credentials and issues/validates signed, time-bounded tokens"""

    def __init__(
        self,
        credentials: CredentialStore,
        secret: str,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = utcnow
    ):
        self.credentials = credentials
        self.secret = secret
        self.token_ttl = token_ttl
        self.clock = clock
        self._dummy_hash: Optional[str] = None

    def _equalize_timing(self, password: str) -> None:
        # Unknown users still pay for one bcrypt comparison
        if self._dummy_hash is None:
            self._dummy_hash = hash_password('panel-dummy-password', rounds=self.credentials.rounds)
        verify_password(password, self._dummy_hash)

    def login(self, username: str, password: str) -> Tuple[str, User]:
        """
        Check a username/password pair and mint a token.

        Unknown users and wrong passwords fail with the same message.

        Returns: (token, user)

        Raises:
            AuthenticationError: credentials did not match
        """
        user = self.credentials.get_user_by_username(username)

        if user is None:
            self._equalize_timing(password)
            logger.info("Login failed", extra={'context': {'username': username}})
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not verify_password(password, user.password_hash):
            logger.info("Login failed", extra={'context': {'username': username}})
            raise AuthenticationError(INVALID_CREDENTIALS)

        public_user = user.public()
        logger.info("Login succeeded", extra={'context': {'username': username}})
        return self.issue_token(public_user), public_user

    def issue_token(self, user: User) -> str:
        issued_at = self.clock()
        payload = {
            'user_id': user.id,
            'username': user.username,
            'iat': int(issued_at.timestamp()),
            'exp': int((issued_at + self.token_ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=TOKEN_ALGORITHM)

    def validate(self, token: str) -> Claims:
        """
        Verify a token's signature and expiry.

        Raises:
            AuthenticationError: the token is malformed, forged or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[TOKEN_ALGORITHM],
                # Expiry is checked below against the service clock
                options={'require': ['exp', 'iat'], 'verify_exp': False, 'verify_iat': False}
            )
            claims = Claims(
                user_id=int(payload['user_id']),
                username=str(payload['username']),
                issued_at=datetime.fromtimestamp(payload['iat'], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload['exp'], tz=timezone.utc),
            )
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError, OverflowError) as e:
            logger.debug("Rejected token", extra={'context': {'reason': str(e)}})
            raise AuthenticationError(INVALID_TOKEN) from e

        if not self.clock() < claims.expires_at:
            logger.debug("Rejected expired token")
            raise AuthenticationError(INVALID_TOKEN)

        return claims
