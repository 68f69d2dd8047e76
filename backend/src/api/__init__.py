# API routes module
# Contains all API endpoint definitions

from .action_item_routes import router as action_item_router
from .progress_routes import router as progress_router

__all__ = ["action_item_router", "progress_router"]
