import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Request, status
from redis.exceptions import RedisError

from jumbler.errors import BackendUnavailable, SessionNotFound
from jumbler.models.session_models import SessionViewModel
from jumbler.services.coordinator import SessionCoordinator

rest_router = APIRouter()


class HealthAPI:
    @staticmethod
    @rest_router.get("/health")
    async def health(request: Request):
        """Report whether the process is up and Redis answers."""
        backend = "ok"
        try:
            await request.app.state.redis.ping()
        except RedisError as e:
            logging.warning(f"Health check could not reach Redis: {e}")
            backend = "unavailable"
        return {
            "status": "ok" if backend == "ok" else "degraded",
            "backend": backend,
            "timestamp": datetime.now().isoformat(),
        }


class SessionAPI:
    @staticmethod
    @rest_router.get("/sessions/{code}", response_model=SessionViewModel)
    async def get_session(code: str, request: Request):
        coordinator: SessionCoordinator = request.app.state.coordinator
        try:
            return await coordinator.get_snapshot(code)
        except SessionNotFound as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
        except BackendUnavailable as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message
            )
