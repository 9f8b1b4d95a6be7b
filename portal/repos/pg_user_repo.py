"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import UserRow
from portal.models.user import User


class PgUserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> User | None:
        row = await self._session.get(UserRow, user_id)
        if row is None:
            return None
        return _row_to_user(row)

    async def add(self, user: User) -> None:
        self._session.add(
            UserRow(
                id=user.id,
                name=user.name,
                email=user.email,
                role=user.role,
                class_name=user.class_name,
                department=user.department,
            )
        )
        await self._session.flush()

    async def search(
        self, query: str, *, role: str = "student", limit: int = 10
    ) -> list[User]:
        needle = query.strip()
        if not needle:
            return []
        pattern = f"%{needle}%"
        stmt = (
            select(UserRow)
            .where(
                UserRow.role == role,
                or_(
                    UserRow.name.ilike(pattern),
                    UserRow.email.ilike(pattern),
                    UserRow.id.ilike(pattern),
                ),
            )
            .order_by(UserRow.name, UserRow.id)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_user(r) for r in rows]


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        role=row.role,
        class_name=row.class_name or "",
        department=row.department or "",
    )
