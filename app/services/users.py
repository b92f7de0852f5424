"""Credential store: read-only lookups and plain writes over the users table."""

from sqlalchemy.orm import Session

from app.models import ROLE_MODERATOR, User


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.lower()).first()


def get_user_by_refresh_token(db: Session, refresh_token: str) -> User | None:
    return db.query(User).filter(User.refresh_token == refresh_token).first()


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.id).all()


def list_users_with_reset_token(db: Session) -> list[User]:
    """Users with an outstanding reset token (bounded by active resets, not table size)."""
    return (
        db.query(User)
        .filter(User.password_reset_token.isnot(None))
        .order_by(User.id)
        .all()
    )


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    role: str = ROLE_MODERATOR,
    needs_password_change: bool = True,
) -> User:
    """Insert a user; the plain password is hashed when the row is flushed."""
    user = User(
        username=username,
        email=email.lower(),
        password=password,
        role=role,
        needs_password_change=needs_password_change,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def apply_password_change(user: User, new_password: str) -> None:
    """
    Set a new password chosen by the owner and drop every credential derived
    from the old one. Caller commits.
    """
    user.password = new_password
    user.needs_password_change = False
    user.password_reset_token = None
    user.password_reset_expires = None
    user.refresh_token = None


def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    db.commit()
