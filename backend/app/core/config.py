"""
Application configuration entry point.

Re-exports the cached settings instance so callers can simply
`from app.core.config import settings`.
"""
from app.core.settings import Settings, get_settings, settings  # noqa: F401
