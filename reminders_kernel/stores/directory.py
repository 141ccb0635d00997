"""SqlUserDirectory -- SQLAlchemy implementation of UserDirectory."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from reminders_kernel.domain.types import User
from reminders_kernel.models.directory import UserModel
from reminders_kernel.stores._session import store_session


class SqlUserDirectory:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def find_active_users(self) -> list[User]:
        with store_session(self._session_factory, "users.find_active") as session:
            stmt = (
                select(UserModel)
                .where(UserModel.active.is_(True))
                .order_by(UserModel.name)
            )
            return [m.to_dto() for m in session.scalars(stmt)]

    def get_user(self, user_id: UUID) -> User | None:
        with store_session(self._session_factory, "users.get") as session:
            model = session.get(UserModel, user_id)
            return model.to_dto() if model else None
