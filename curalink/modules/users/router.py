import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.core.db import get_session
from curalink.core.schemas import SuccessOut
from curalink.core.security import get_principal, Principal
from curalink.modules.users.schemas import MeOut, UserOut, NudgeCreate
from curalink.modules.users.service import UserService

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session)) -> UserService: return UserService(s)

@router.get("/me", response_model=MeOut)
async def me(principal: Principal = Depends(get_principal), service: UserService = Depends(svc)):
    return MeOut(user=UserOut.model_validate(await service.me(principal.user_id)))

@router.post("/{user_id}/nudge", response_model=SuccessOut)
async def nudge(user_id: uuid.UUID, payload: NudgeCreate, principal: Principal = Depends(get_principal), service: UserService = Depends(svc)):
    await service.nudge(principal.user_id, user_id, payload.message)
    return SuccessOut(message="Nudge sent successfully")
