"""Global pytest configuration."""

import os

# Set before any app imports so cached settings and engines pick them up
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORE_BACKEND", "memory")
