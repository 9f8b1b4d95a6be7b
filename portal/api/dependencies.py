from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from portal.core.clock import Clock, system_clock
from portal.db.engine import async_session_factory
from portal.models.principal import Principal
from portal.repos.assessment_repo import AssessmentRepo, InMemoryAssessmentRepo
from portal.repos.pg_assessment_repo import PgAssessmentRepo
from portal.repos.pg_submission_repo import PgSubmissionRepo
from portal.repos.pg_user_repo import PgUserRepo
from portal.repos.submission_repo import InMemorySubmissionRepo, SubmissionRepo
from portal.repos.user_repo import InMemoryUserRepo, UserRepo
from portal.services import token_service
from portal.services.cache import CacheService, cache_service

logger = logging.getLogger(__name__)

# tokenUrl points at the identity service; it is only used by the docs UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
        name=claims.get("name") or "",
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        sorted(principal.roles),
    )
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("student"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def require_any_role(roles: set[str] | frozenset[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role(AUTHOR_ROLES))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s has none of roles=%s",
                principal.user_id,
                sorted(roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


# ---------------------------------------------------------------------------
# Time, storage, cache
# ---------------------------------------------------------------------------


def get_clock() -> Clock:
    """Overridden in tests with a FixedClock."""
    return system_clock


def get_cache() -> CacheService:
    return cache_service


@dataclass(frozen=True, slots=True)
class Repos:
    assessments: AssessmentRepo
    submissions: SubmissionRepo
    users: UserRepo


# In-memory singletons, used whenever DATABASE_URL is unset.
assessment_repo = InMemoryAssessmentRepo()
submission_repo = InMemorySubmissionRepo()
user_repo = InMemoryUserRepo()
_IN_MEMORY = Repos(assessment_repo, submission_repo, user_repo)


async def get_repos() -> AsyncGenerator[Repos, None]:
    """Request-scoped repositories.

    With a database, all three share one session: commit on success,
    roll back on any exception, including HTTP errors raised by the route.
    """
    if async_session_factory is None:
        yield _IN_MEMORY
        return

    async with async_session_factory() as session:
        try:
            yield Repos(
                PgAssessmentRepo(session),
                PgSubmissionRepo(session),
                PgUserRepo(session),
            )
            await session.commit()
        except Exception:
            await session.rollback()
            raise
