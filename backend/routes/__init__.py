from .chat import router as chat_router
from .catalog import router as catalog_router

__all__ = ["chat_router", "catalog_router"]
