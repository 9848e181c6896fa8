import os
from dotenv import load_dotenv

load_dotenv()

redis_host = os.getenv("REDIS_HOST", "localhost")
redis_port = int(os.getenv("REDIS_PORT", "6379"))
redis_password = os.getenv("REDIS_PASSWORD") or None
redis_db = int(os.getenv("REDIS_DB", "0"))
# Sessions expire this many seconds after their last write.
session_ttl_seconds = int(os.getenv("SESSION_TTL_SECONDS", str(24 * 60 * 60)))
cors_origin = os.getenv("CORS_ORIGIN", "http://localhost:5173")
log_level = os.getenv("LOG_LEVEL", "INFO")

if __name__ == "__main__":
    print(redis_host, redis_port, redis_db, session_ttl_seconds, cors_origin)
