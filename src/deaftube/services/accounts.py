"""Account registration, login and profile management."""

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from deaftube.config import settings
from deaftube.db.models import UserModel
from deaftube.db.session import atomic
from deaftube.domain.enums import BlobCategory
from deaftube.logging import get_logger
from deaftube.services.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from deaftube.services.identity import hash_password, issue_token, verify_password
from deaftube.services.storage import StorageService, Upload

logger = get_logger(__name__)


def register(
    session: Session,
    username: str | None,
    email: str | None,
    password: str | None,
    sign_language: str | None = None,
) -> tuple[str, UserModel]:
    """Create an account and sign it in.

    Returns:
        Bearer token and the created user.

    Raises:
        ValidationError: If username, email or password is missing.
        ConflictError: If the username or email is already taken.
    """
    if not username or not email or not password:
        raise ValidationError("All fields required")

    taken = session.execute(
        select(UserModel.id).where(or_(UserModel.username == username, UserModel.email == email))
    ).first()
    if taken:
        raise ConflictError("Username or email already exists")

    user = UserModel(
        username=username,
        email=email,
        password=hash_password(password),
        sign_language=sign_language or settings.default_sign_language,
    )
    try:
        with atomic(session):
            session.add(user)
    except IntegrityError:
        # Lost a race with a concurrent registration for the same name/email
        raise ConflictError("Username or email already exists") from None

    logger.info("user_registered", user_id=user.id, username=user.username)
    return issue_token(user.id, user.username), user


def login(session: Session, email: str | None, password: str | None) -> tuple[str, UserModel]:
    """Check credentials and issue a bearer token.

    Raises:
        ValidationError: If email or password is missing.
        UnauthorizedError: If the email is unknown or the password is wrong.
    """
    if not email or not password:
        raise ValidationError("Email and password required")

    user = session.execute(select(UserModel).where(UserModel.email == email)).scalar_one_or_none()
    if user is None or not verify_password(password, user.password):
        logger.info("login_failed", email=email)
        raise UnauthorizedError("Invalid credentials")

    logger.info("user_logged_in", user_id=user.id)
    return issue_token(user.id, user.username), user


def get_user(session: Session, user_id: str) -> UserModel:
    """Get a user by id.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = session.get(UserModel, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def update_profile(
    session: Session,
    user_id: str,
    bio: str | None = None,
    sign_language: str | None = None,
    avatar: Upload | None = None,
    storage: StorageService | None = None,
) -> UserModel:
    """Replace a user's bio and sign language, and their avatar when one was uploaded.

    A replaced avatar file is removed from storage once the update commits.

    Returns:
        The updated user.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = get_user(session, user_id)
    previous_avatar = user.avatar

    values: dict[str, str] = {
        "bio": bio or "",
        "sign_language": sign_language or settings.default_sign_language,
    }
    stored = None
    if avatar is not None:
        if storage is None:
            raise ValueError("storage is required to update the avatar")
        stored = storage.store(avatar.fileobj, avatar.filename, BlobCategory.AVATAR)
        values["avatar"] = stored.filename

    try:
        with atomic(session):
            session.execute(
                update(UserModel).where(UserModel.id == user_id).values(**values),
                execution_options={"synchronize_session": False},
            )
    except SQLAlchemyError:
        if stored is not None:
            storage.delete(stored.filename, BlobCategory.AVATAR)
        raise

    if stored is not None and previous_avatar:
        storage.delete(previous_avatar, BlobCategory.AVATAR)

    session.refresh(user)
    logger.info("profile_updated", user_id=user_id, avatar_changed=stored is not None)
    return user
