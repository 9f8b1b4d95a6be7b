from __future__ import annotations

from dataclasses import dataclass

STUDENT = "student"
PROFESSOR = "professor"
MANAGEMENT = "management"
ALUMNI = "alumni"

AUTHOR_ROLES = frozenset({PROFESSOR, MANAGEMENT})


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    user_id is the token subject; name is the display name carried in the
    token so submissions can record it without a directory lookup.
    """

    user_id: str
    roles: frozenset[str]
    name: str = ""

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str] | frozenset[str]) -> bool:
        return bool(self.roles & roles)

    def is_author(self) -> bool:
        return self.has_any_role(AUTHOR_ROLES)

    def is_management(self) -> bool:
        return MANAGEMENT in self.roles
