from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from portal.api.dependencies import Repos, get_repos, require_any_role
from portal.models.principal import AUTHOR_ROLES, Principal
from portal.services import assessment_service

logger = logging.getLogger(__name__)

# GET /v1/users/search: student lookup for the assignee picker.
# Delegates to assessment_service.search_assignable_users().

router = APIRouter(prefix="/v1/users", tags=["users"])


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    class_name: str
    department: str


@router.get("/search", response_model=list[UserOut])
async def search_users(
    principal: Annotated[Principal, Depends(require_any_role(AUTHOR_ROLES))],
    repos: Annotated[Repos, Depends(get_repos)],
    q: Annotated[str, Query(max_length=100)] = "",
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> list[UserOut]:
    users = await assessment_service.search_assignable_users(
        repos.users, q, limit=limit
    )
    logger.debug(
        "User search by user=%s returned %d result(s)", principal.user_id, len(users)
    )
    return [
        UserOut(
            id=u.id,
            name=u.name,
            email=u.email,
            class_name=u.class_name,
            department=u.department,
        )
        for u in users
    ]
