"""Reading-state tracker for Mangatrack.

Tokens, per-user favorites and finished chapters, and the image proxy.
"""

from .router import router

__all__ = ["router"]
