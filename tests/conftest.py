import os

# Settings are read at import time; point them at throwaway values before any app import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-bootstrap.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENV", "test")
