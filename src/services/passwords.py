"""Password hashing and verification."""

import logging

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from src.models.user import User
from src.services.errors import InvalidCredentials

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class PasswordVerifier:
    """Salted one-way password hashing backed by bcrypt."""

    def __init__(self, db: Session, context: CryptContext | None = None):
        self.db = db
        self.context = context or pwd_context

    def hash(self, plaintext: str) -> str:
        """Hash a password."""
        return self.context.hash(plaintext)

    def verify(self, plaintext: str, stored_hash: str | None) -> bool:
        """Verify a password against its hash."""
        if not stored_hash:
            return False
        try:
            return self.context.verify(plaintext, stored_hash)
        except ValueError:
            # Unrecognized or corrupt hash
            logger.warning("Stored password hash could not be parsed")
            return False

    def change_password(self, user: User, old_password: str, new_password: str) -> None:
        """Replace the user's password after checking the current one."""
        if not self.verify(old_password, user.password_hash):
            raise InvalidCredentials("Invalid old password")

        user.password_hash = self.hash(new_password)
        self.db.commit()
        logger.info(f"Password changed for user {user.id}")
