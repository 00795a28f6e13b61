from fastapi import APIRouter
from karaoke.api.v1.endpoints import users, sessions, queue, votes, challenges, invitations, search, context, health, ws

api_router = APIRouter()
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(context.router, prefix="/context", tags=["context"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(queue.router, tags=["queue"])
api_router.include_router(votes.router, prefix="/queue", tags=["votes"])
api_router.include_router(challenges.router, tags=["challenges"])
api_router.include_router(invitations.router, tags=["invitations"])
api_router.include_router(search.router, prefix="/search", tags=["search"])
api_router.include_router(health.router, tags=["health"])
api_router.include_router(ws.router, prefix="/ws", tags=["ws"])
