"""Core infrastructure: config, database, logging, middleware, exceptions."""

from orderlens.core.config import Settings, get_settings
from orderlens.core.database import Base, get_db
from orderlens.core.exceptions import OrderLensError
from orderlens.core.logging import get_logger, request_id_ctx

__all__ = [
    "Base",
    "OrderLensError",
    "Settings",
    "get_db",
    "get_logger",
    "get_settings",
    "request_id_ctx",
]
