"""Access/refresh token issuance, verification and rotation."""

import hashlib
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.config import Settings
from src.models.user import User
from src.schemas.auth import TokenPair
from src.services.errors import InternalError, Unauthenticated

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"  # noqa: S105
REFRESH_TOKEN_TYPE = "refresh"  # noqa: S105


@dataclass(frozen=True)
class TokenConfig:
    """Secrets and lifetimes for both token kinds."""

    access_secret: str
    refresh_secret: str
    access_ttl: timedelta
    refresh_ttl: timedelta
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_ttl=timedelta(minutes=settings.access_token_expiry_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expiry_days),
            algorithm=settings.jwt_algorithm,
        )


class SignedToken:
    """JWT signing and verification with a configurable algorithm."""

    def __init__(self, algorithm: str = "HS256"):
        self.algorithm = algorithm

    def sign(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        """Sign claims, adding issued-at, expiry and a unique token id."""
        now = datetime.now(UTC)
        to_encode = {
            **claims,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def verify(self, token: str | None, secret: str, token_type: str) -> dict[str, Any]:
        """Decode and validate a token.

        Every failure (expired, malformed, bad signature, wrong kind) is
        reported the same way so callers cannot tell the cases apart.
        """
        if not token:
            raise Unauthenticated("Unauthorized request")
        try:
            claims = jwt.decode(token, secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise Unauthenticated("Invalid or expired token") from None
        if claims.get("type") != token_type:
            raise Unauthenticated("Invalid or expired token")
        return claims


def hash_token(token: str) -> str:
    """One-way digest of a refresh token, as stored on the user."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _subject(claims: dict[str, Any]) -> int:
    """Extract the user id from token claims."""
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token") from None


class TokenService:
    """Issues token pairs and keeps the stored refresh-token hash current."""

    def __init__(self, db: Session, config: TokenConfig, signer: SignedToken | None = None):
        self.db = db
        self.config = config
        self.signer = signer or SignedToken(config.algorithm)

    def _sign_pair(self, user: User) -> TokenPair:
        access_token = self.signer.sign(
            {
                "sub": str(user.id),
                "type": ACCESS_TOKEN_TYPE,
                "email": user.email,
                "username": user.username,
            },
            self.config.access_secret,
            self.config.access_ttl,
        )
        refresh_token = self.signer.sign(
            {"sub": str(user.id), "type": REFRESH_TOKEN_TYPE},
            self.config.refresh_secret,
            self.config.refresh_ttl,
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def issue_token_pair(self, user_id: int) -> TokenPair:
        """Create a new token pair and persist the refresh token hash.

        Overwrites any previous refresh token hash, so earlier refresh tokens
        for this user stop working.
        """
        try:
            user = self.db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load user {user_id} for token issuance: {e}")
            raise InternalError("Error while generating access and refresh tokens") from None
        if user is None:
            logger.error(f"Token issuance requested for missing user {user_id}")
            raise InternalError("Error while generating access and refresh tokens")

        pair = self._sign_pair(user)
        try:
            user.refresh_token_hash = hash_token(pair.refresh_token)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to persist refresh token for user {user_id}: {e}")
            raise InternalError("Error while generating access and refresh tokens") from None
        return pair

    def verify_access_token(self, token: str | None) -> int:
        """Return the user id carried by a valid access token."""
        claims = self.signer.verify(token, self.config.access_secret, ACCESS_TOKEN_TYPE)
        return _subject(claims)

    def _load_stored_hash(self, user_id: int) -> tuple[bool, str | None]:
        """Read the current refresh token hash straight from the store."""
        row = self.db.query(User.refresh_token_hash).filter(User.id == user_id).first()
        if row is None:
            return False, None
        return True, row[0]

    def rotate_refresh_token(self, presented_token: str | None) -> TokenPair:
        """Exchange a refresh token for a new pair, invalidating the old one.

        The swap is a compare-and-set on the previous hash: a replayed token,
        or the loser of two concurrent rotations, is rejected.
        """
        claims = self.signer.verify(
            presented_token, self.config.refresh_secret, REFRESH_TOKEN_TYPE
        )
        user_id = _subject(claims)

        exists, stored_hash = self._load_stored_hash(user_id)
        if not exists:
            raise Unauthenticated("Invalid refresh token")

        presented_hash = hash_token(presented_token)
        if stored_hash is None or stored_hash != presented_hash:
            logger.warning(f"Refresh token mismatch for user {user_id}")
            raise Unauthenticated("Refresh token is expired or already used")

        user = self.db.get(User, user_id)
        if user is None:
            raise Unauthenticated("Invalid refresh token")
        pair = self._sign_pair(user)

        try:
            updated = (
                self.db.query(User)
                .filter(User.id == user_id, User.refresh_token_hash == presented_hash)
                .update(
                    {User.refresh_token_hash: hash_token(pair.refresh_token)},
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to rotate refresh token for user {user_id}: {e}")
            raise InternalError("Error while generating access and refresh tokens") from None

        if updated != 1:
            logger.warning(f"Concurrent refresh token rotation lost for user {user_id}")
            raise Unauthenticated("Refresh token is expired or already used")

        return pair

    def invalidate(self, user_id: int) -> None:
        """Clear the stored refresh token hash for the user."""
        try:
            self.db.query(User).filter(User.id == user_id).update(
                {User.refresh_token_hash: None}, synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to clear refresh token for user {user_id}: {e}")
            raise InternalError("Something went wrong while logging out") from None
