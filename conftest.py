"""Global pytest configuration."""

import os

# Settings are read at import time by the app; point them at SQLite first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
