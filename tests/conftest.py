# tests/conftest.py
"""Point settings at throwaway backends before any wastetrack module is imported."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("LOG_TO_FILE", "false")
