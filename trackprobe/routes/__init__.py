from .tracks import tracks_router

__all__ = ["tracks_router"]
