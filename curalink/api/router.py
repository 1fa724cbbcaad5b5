from fastapi import APIRouter
from curalink.modules.users.router import router as users_router
from curalink.modules.connections.router import router as connections_router
from curalink.modules.follows.router import router as follows_router
from curalink.modules.meetings.router import router as meetings_router
from curalink.modules.notifications.router import router as notifications_router

api_router = APIRouter()
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(connections_router, prefix="/connections", tags=["connections"])
api_router.include_router(follows_router, prefix="/follows", tags=["follows"])
api_router.include_router(meetings_router, prefix="/meetings", tags=["meetings"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["notifications"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
