"""Value objects package."""
from .recognition import (
    EnrollmentOutcome,
    Frame,
    GalleryStats,
    IdentityCreated,
    IdentityExtended,
    LabelImportResult,
    MatchResult,
    MultipleFacesDetected,
    NameConflict,
    NameTaken,
    NoFaceDetected,
)

__all__ = [
    "EnrollmentOutcome",
    "Frame",
    "GalleryStats",
    "IdentityCreated",
    "IdentityExtended",
    "LabelImportResult",
    "MatchResult",
    "MultipleFacesDetected",
    "NameConflict",
    "NameTaken",
    "NoFaceDetected",
]
