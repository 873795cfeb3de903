"""
UserStore - the only code that touches the users table.
"""

from typing import List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError

from cellar.shared import db_service

from .errors import LastAdminError, UserNotFoundError, UsernameTakenError
from .models import Base, User


def init_user_tables():
    """Create the users table if it doesn't exist."""
    Base.metadata.create_all(db_service.get_engine())


class UserStore:
    """Repository over the users table. Returned objects are detached."""

    def count(self) -> int:
        with db_service.get_session() as session:
            return session.scalar(select(func.count()).select_from(User))

    def count_admins(self) -> int:
        with db_service.get_session() as session:
            return session.scalar(
                select(func.count()).select_from(User).where(User.is_admin.is_(True))
            )

    def get(self, user_id: int) -> Optional[User]:
        with db_service.get_session() as session:
            return session.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        with db_service.get_session() as session:
            return session.scalars(
                select(User).where(User.username == username)
            ).first()

    def list_all(self) -> List[User]:
        with db_service.get_session() as session:
            return list(session.scalars(select(User).order_by(User.id)))

    def create(self, username: str, password_hash: str, is_admin: bool = False) -> User:
        """
        Insert a new user.

        Raises:
            UsernameTakenError: If the username is already in use
        """
        user = User(username=username, password_hash=password_hash, is_admin=is_admin)
        try:
            with db_service.get_session() as session:
                session.add(user)
                session.flush()
        except IntegrityError:
            raise UsernameTakenError()
        return user

    def delete_unless_last_admin(self, user_id: int) -> User:
        """
        Delete a user, refusing to remove the only remaining admin.

        The admin count and the delete run as a single DELETE statement.

        Raises:
            UserNotFoundError: No such user
            LastAdminError: The user is the sole admin
        """
        admin_count = (
            select(func.count())
            .select_from(User)
            .where(User.is_admin.is_(True))
            .scalar_subquery()
        )
        statement = (
            delete(User)
            .where(User.id == user_id)
            .where(or_(User.is_admin.is_(False), admin_count > 1))
            .execution_options(synchronize_session=False)
        )

        with db_service.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError()
            deleted = session.execute(statement).rowcount
            if deleted == 0:
                if session.get(User, user_id, populate_existing=True) is None:
                    raise UserNotFoundError()
                raise LastAdminError()
        return user

    def update_password(self, user_id: int, password_hash: str) -> User:
        """
        Replace a user's password hash.

        Raises:
            UserNotFoundError: No such user
        """
        with db_service.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError()
            user.password_hash = password_hash
        return user
