import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("BROADCAST_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
