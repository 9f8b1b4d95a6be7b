from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class User:
    """Directory entry used to build an assessment's cohort."""

    id: str
    name: str
    email: str
    role: str = "student"  # student|professor|management|alumni
    class_name: str = ""
    department: str = ""

    def matches(self, query: str) -> bool:
        needle = query.strip().lower()
        if not needle:
            return False
        return any(
            needle in value.lower() for value in (self.id, self.name, self.email)
        )
