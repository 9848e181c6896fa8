import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from redis.asyncio import Redis
from starlette.middleware.cors import CORSMiddleware

from jumbler.create_redis_client import create_redis_client
from jumbler.load_secrets import cors_origin, log_level, session_ttl_seconds
from jumbler.manager import ConnectionManager
from jumbler.routers.restapi import rest_router
from jumbler.routers.session_ws import session_router
from jumbler.services.coordinator import SessionCoordinator
from jumbler.session_store import SessionStore

logging.basicConfig(level=log_level)


def create_app(
    redis_factory: Callable[[], Redis] = create_redis_client,
    ttl_seconds: int = session_ttl_seconds,
) -> FastAPI:
    """Build the application; the Redis client lives exactly as long as the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        redis = redis_factory()
        store = SessionStore(redis, ttl_seconds=ttl_seconds)
        app.state.redis = redis
        app.state.coordinator = SessionCoordinator(store)
        app.state.connection_manager = ConnectionManager(store)
        logging.info("Start Server")
        try:
            yield
        finally:
            await app.state.connection_manager.close()
            await redis.aclose()
            logging.info("Stop Server")

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(session_router)
    app.include_router(rest_router)
    return app


app = create_app()
