"""Gallery matching services."""
from .gallery import Gallery
from .gallery_service import GalleryService

__all__ = ["Gallery", "GalleryService"]
