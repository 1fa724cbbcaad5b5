import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.core.db import get_session
from curalink.core.security import get_principal, require_roles, Principal
from curalink.modules.users.models import Role
from curalink.modules.follows.models import Follow
from curalink.modules.follows.schemas import (
    FollowCreate, FollowOut, FollowRequestOut, FollowResultOut, UnfollowOut, FollowStatusOut, FollowRequestListOut,
)
from curalink.modules.follows.service import FollowService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> FollowService:
    return FollowService(session)

@router.post("", response_model=FollowResultOut)
async def follow(payload: FollowCreate, principal: Principal = Depends(get_principal), service: FollowService = Depends(svc)):
    result = await service.follow(principal.user_id, payload.target_id, payload.target_name, payload.message)
    if isinstance(result, Follow):
        return FollowResultOut(follow=FollowOut.model_validate(result), message="Successfully followed")
    return FollowResultOut(follow_request=FollowRequestOut.model_validate(result),
                           message="Follow request sent to administrators for review")

# declared before /{target_id} so "requests" is not parsed as an id
@router.get("/requests", response_model=FollowRequestListOut)
async def pending_follow_requests(
    limit: int = Query(default=100, ge=1, le=500),
    principal: Principal = Depends(require_roles(Role.ADMIN)),
    service: FollowService = Depends(svc),
):
    rows = await service.pending_requests(limit)
    return FollowRequestListOut(follow_requests=[FollowRequestOut.model_validate(r) for r in rows])

@router.get("/{target_id}", response_model=FollowStatusOut)
async def follow_status(target_id: uuid.UUID, principal: Principal = Depends(get_principal), service: FollowService = Depends(svc)):
    return FollowStatusOut(is_following=await service.is_following(principal.user_id, target_id))

@router.delete("/{target_id}", response_model=UnfollowOut)
async def unfollow(target_id: uuid.UUID, principal: Principal = Depends(get_principal), service: FollowService = Depends(svc)):
    removed = await service.unfollow(principal.user_id, target_id)
    return UnfollowOut(removed=removed)
