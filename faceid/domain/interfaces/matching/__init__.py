from .face_matcher import FaceMatcher

__all__ = ["FaceMatcher"]
