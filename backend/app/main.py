"""
ASGI entry point.

    uvicorn app.main:app --reload
"""

from core.config import get_settings

from app.app_factory import create_app
from app.startup import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

app = create_app(settings)
