"""ORM model for operator accounts (admins and moderators)."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    event,
    func,
    inspect,
)

from app.core.security import hash_password
from app.models.base import Base

ROLE_ADMIN = "admin"
ROLE_MODERATOR = "moderator"
ROLES = (ROLE_ADMIN, ROLE_MODERATOR)


class User(Base):
    """
    Operator account for JWT authentication and role-based access control.

    `password` is assigned in plain text and hashed with bcrypt when the row is
    flushed (insert, or update with the attribute changed), so only hashes reach
    the database. `password_reset_token` is always a hash of the mailed token.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'moderator')", name="ck_users_role"),
        CheckConstraint(
            "password_reset_token IS NULL OR password_reset_expires IS NOT NULL",
            name="ck_users_reset_expiry",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(30), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_MODERATOR)
    needs_password_change = Column(Boolean, nullable=False, default=True)
    refresh_token = Column(String(128), nullable=True, index=True)
    password_reset_token = Column(String(255), nullable=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"


@event.listens_for(User, "before_insert")
def _hash_password_on_insert(mapper, connection, target: User) -> None:
    if target.password:
        target.password = hash_password(target.password)


@event.listens_for(User, "before_update")
def _hash_password_on_update(mapper, connection, target: User) -> None:
    if target.password and inspect(target).attrs.password.history.has_changes():
        target.password = hash_password(target.password)
