from __future__ import annotations

from typing import Protocol

from portal.models.user import User


class UserRepo(Protocol):
    async def get(self, user_id: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def search(
        self, query: str, *, role: str = "student", limit: int = 10
    ) -> list[User]: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}

    async def get(self, user_id: str) -> User | None:
        return self._by_id.get(user_id)

    async def add(self, user: User) -> None:
        if user.id in self._by_id:
            raise ValueError("user already exists")
        self._by_id[user.id] = user

    async def search(
        self, query: str, *, role: str = "student", limit: int = 10
    ) -> list[User]:
        hits = [u for u in self._by_id.values() if u.role == role and u.matches(query)]
        hits.sort(key=lambda u: (u.name.lower(), u.id))
        return hits[:limit]
