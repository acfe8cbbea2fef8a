"""API specific face models."""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from faceid.domain.value_objects.recognition import (
    EnrollmentOutcome,
    IdentityCreated,
    IdentityExtended,
    MultipleFacesDetected,
    NameConflict,
    NameTaken,
    NoFaceDetected,
)

# Messages shown to the user by the browser client
NO_FACE_MESSAGE = "There is no face in the frame"
MULTIPLE_FACES_MESSAGE = "Please make sure only 1 person is in the frame"
IDENTITY_CREATED_MESSAGE = "New user created"


class RecognitionRequest(BaseModel):
    """Request model for the /recognize endpoint."""
    frame_data: str = Field(
        ...,
        description="Frame as a base64 data URL; \"data:,\" denotes an empty frame",
        max_length=20_000_000
    )


class RecognitionResponse(BaseModel):
    """Response model for the /recognize endpoint."""
    names: List[str] = Field(...,
                             description="One label per detected face, in detection order")


class EnrollmentRequest(BaseModel):
    """Request model for the /enroll endpoint."""
    name: str = Field(
        ...,
        description="Name to enroll a new face under",
        min_length=1, max_length=255
    )
    frame_data: str = Field(
        ...,
        description="Frame as a base64 data URL, expected to contain exactly one face",
        max_length=20_000_000
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject names made only of whitespace."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped


class EnrollmentResponse(BaseModel):
    """Response model for the /enroll endpoint."""
    outcome: Literal[
        "identity_created",
        "identity_extended",
        "no_face_detected",
        "multiple_faces_detected",
        "name_conflict",
        "name_taken",
    ] = Field(..., description="What the enrollment did")
    label: Optional[str] = Field(None,
                                 description="Label the face is enrolled under")
    message: str = Field(..., description="Human readable outcome")
    names: List[str] = Field(default_factory=list,
                             description="Resolved label for returning identities")

    @classmethod
    def from_outcome(cls, outcome: EnrollmentOutcome) -> "EnrollmentResponse":
        """Convert the workflow outcome to the API response model."""
        if isinstance(outcome, IdentityCreated):
            return cls(outcome=outcome.kind, label=outcome.label, message=IDENTITY_CREATED_MESSAGE)
        if isinstance(outcome, IdentityExtended):
            return cls(
                outcome=outcome.kind,
                label=outcome.label,
                message=f"{outcome.label} updated",
                names=[outcome.label],
            )
        if isinstance(outcome, NoFaceDetected):
            return cls(outcome=outcome.kind, message=NO_FACE_MESSAGE)
        if isinstance(outcome, MultipleFacesDetected):
            return cls(outcome=outcome.kind, message=MULTIPLE_FACES_MESSAGE)
        if isinstance(outcome, NameConflict):
            return cls(
                outcome=outcome.kind,
                label=outcome.label,
                message=f"This face is already registered as {outcome.label}",
            )
        if isinstance(outcome, NameTaken):
            return cls(
                outcome=outcome.kind,
                label=outcome.label,
                message=f"The name {outcome.label} is already taken, please choose another",
            )
        raise TypeError(f"Unsupported enrollment outcome: {outcome!r}")


class GalleryStatsResponse(BaseModel):
    """Gallery size reported by the health endpoint."""
    identities: int = Field(..., description="Number of enrolled identities")
    embeddings: int = Field(..., description="Number of enrolled embeddings")


class HealthResponse(BaseModel):
    """Response model for the /health endpoint."""
    status: str = Field(..., description="Service status")
    gallery: Optional[GalleryStatsResponse] = Field(None, description="Gallery size, when loaded")
