"""Custom exceptions for the face identity service."""
from typing import Optional


class FaceRecognitionError(Exception):
    """Base exception for face recognition operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face recognition error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class InvalidFrameError(FaceRecognitionError):
    """Raised when the provided frame is malformed or cannot be decoded."""
    pass


class DetectorFailureError(FaceRecognitionError):
    """Raised when the face detector fails to process a frame."""
    pass


class DetectorTimeoutError(DetectorFailureError):
    """Raised when the face detector does not answer in time."""
    pass


class ModelLoadError(FaceRecognitionError):
    """Raised when the face detection model fails to load."""
    pass


class StoreUnavailableError(FaceRecognitionError):
    """Raised when the embedding store cannot be reached."""
    pass


class CorruptEmbeddingError(FaceRecognitionError):
    """Raised when an embedding does not have the expected shape or values."""
    pass


class IdentityExistsError(FaceRecognitionError):
    """Raised when creating an identity under a label that is already enrolled."""
    pass


class IdentityNotFoundError(FaceRecognitionError):
    """Raised when appending to an identity that was never enrolled."""
    pass


class ServiceNotInitializedError(FaceRecognitionError):
    """Raised when a service is requested before the container is initialized."""
    pass
