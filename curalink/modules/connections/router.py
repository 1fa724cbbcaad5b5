import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.core.db import get_session
from curalink.core.security import require_roles, Principal
from curalink.modules.users.models import Role
from curalink.modules.connections.schemas import (
    ConnectionCreate, ConnectionRespond, ConnectionOut, ConnectionMutationOut, PendingListOut, CollaboratorListOut,
)
from curalink.modules.connections.service import ConnectionService

router = APIRouter()

researcher_only = require_roles(Role.RESEARCHER)

def svc(session: AsyncSession = Depends(get_session)) -> ConnectionService:
    return ConnectionService(session)

@router.post("", response_model=ConnectionMutationOut)
async def request_connection(
    payload: ConnectionCreate,
    principal: Principal = Depends(researcher_only),
    service: ConnectionService = Depends(svc),
):
    conn = await service.request(principal.user_id, payload.target_id)
    return ConnectionMutationOut(connection=ConnectionOut.model_validate(conn))

@router.patch("/{connection_id}", response_model=ConnectionMutationOut)
async def respond_to_connection(
    connection_id: uuid.UUID,
    payload: ConnectionRespond,
    principal: Principal = Depends(researcher_only),
    service: ConnectionService = Depends(svc),
):
    conn = await service.respond(connection_id, principal.user_id, payload.decision)
    return ConnectionMutationOut(connection=ConnectionOut.model_validate(conn))

@router.get("/pending", response_model=PendingListOut)
async def pending_requests(principal: Principal = Depends(researcher_only), service: ConnectionService = Depends(svc)):
    return PendingListOut(requests=await service.list_pending(principal.user_id))

@router.get("/collaborators", response_model=CollaboratorListOut)
async def collaborators(
    search: str | None = None,
    limit: int = Query(default=30, ge=1, le=100),
    principal: Principal = Depends(researcher_only),
    service: ConnectionService = Depends(svc),
):
    return CollaboratorListOut(collaborators=await service.collaborators(principal.user_id, search=search, limit=limit))
