"""Global pytest configuration."""

import os

# Set DATABASE_URL for tests before any imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
# Keep tests offline regardless of the developer's .env
os.environ["GOOGLE_PLACES_API_KEY"] = ""
os.environ["GOOGLE_DIRECTIONS_API_KEY"] = ""
