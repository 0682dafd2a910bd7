from .festivals import router as festivals_router

__all__ = ["festivals_router"]
