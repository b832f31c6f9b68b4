"""
portal_gateway.api.routers.roles

Admin endpoints for role grants.

Responsibilities:
- List, grant and revoke a user's roles in the `user_roles` table.
- Restrict every operation to callers whose effective role is `admin`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_200_OK, HTTP_201_CREATED, HTTP_404_NOT_FOUND

from portal_gateway.api.deps import db_session
from portal_gateway.auth.deps import require_role
from portal_gateway.auth.models import Principal
from portal_gateway.auth.roles import DEFAULT_HIERARCHY, Role
from portal_gateway.db.repositories.user_roles import UserRoleRepo
from portal_gateway.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter(
    prefix="/v1/roles",
    tags=["roles"],
    dependencies=[Depends(require_role(Role.admin))],
)


class RoleGrantRequest(BaseModel):
    role: Role


class UserRolesResponse(BaseModel):
    user_id: str
    roles: list[Role]
    effective_role: Role | None


async def _user_roles(repo: UserRoleRepo, user_id: str) -> UserRolesResponse:
    grants = await repo.list_for_user(user_id)
    roles = [g.role for g in grants]
    return UserRolesResponse(
        user_id=user_id,
        roles=roles,
        effective_role=DEFAULT_HIERARCHY.highest(roles),
    )


@router.get("/{user_id}", response_model=UserRolesResponse)
async def list_roles(
    user_id: str,
    session: AsyncSession = Depends(db_session),
) -> UserRolesResponse:
    return await _user_roles(UserRoleRepo(session), user_id)


@router.post("/{user_id}", response_model=UserRolesResponse)
async def grant_role(
    user_id: str,
    body: RoleGrantRequest,
    response: Response,
    principal: Principal = Depends(require_role(Role.admin)),
    session: AsyncSession = Depends(db_session),
) -> UserRolesResponse:
    repo = UserRoleRepo(session)
    # Granting an existing role is a no-op reported with 200.
    created = not await repo.has_role(user_id, body.role)
    await repo.add(user_id=user_id, role=body.role)
    await session.commit()
    response.status_code = HTTP_201_CREATED if created else HTTP_200_OK
    log.info("roles.granted", user_id=user_id, role=body.role.value, actor=principal.subject)
    return await _user_roles(repo, user_id)


@router.delete("/{user_id}/{role}", response_model=UserRolesResponse)
async def revoke_role(
    user_id: str,
    role: Role,
    principal: Principal = Depends(require_role(Role.admin)),
    session: AsyncSession = Depends(db_session),
) -> UserRolesResponse:
    repo = UserRoleRepo(session)
    if not await repo.remove(user_id=user_id, role=role):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Role grant not found")
    await session.commit()
    log.info("roles.revoked", user_id=user_id, role=role.value, actor=principal.subject)
    return await _user_roles(repo, user_id)


# --- Module Notes -----------------------------------------------------------
# Role changes take effect on the caller's next gateway request; nothing is cached.
