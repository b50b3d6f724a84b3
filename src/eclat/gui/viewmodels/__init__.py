"""View-state adapters over the engine (pure Python, no Qt dependency)."""

from .base import BaseViewModel
from .gallery_viewmodel import GalleryViewModel

__all__ = ["BaseViewModel", "GalleryViewModel"]
