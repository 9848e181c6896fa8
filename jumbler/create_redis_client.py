from redis.asyncio import Redis

from jumbler.load_secrets import redis_db, redis_host, redis_password, redis_port


def create_redis_client() -> Redis:
    """Build the shared Redis client from the environment.

    The caller owns the client and must close it with ``aclose()``.
    """
    return Redis(
        host=redis_host,
        port=redis_port,
        password=redis_password,
        db=redis_db,
        decode_responses=True,
        health_check_interval=30,
    )
