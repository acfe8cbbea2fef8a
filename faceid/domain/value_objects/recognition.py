"""Face recognition value objects."""
from typing import Literal, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from faceid.core.exceptions import InvalidFrameError
from faceid.core.utils.image import bytes_to_numpy_array, data_url_to_bytes, is_empty_data_url


class Frame(BaseModel):
    """A decoded video frame, or the empty frame when there is nothing to look at."""
    pixels: Optional[np.ndarray] = Field(None, description="Decoded image (H x W x C)")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def is_empty(self) -> bool:
        """True when the frame carries no visual content."""
        return self.pixels is None or self.pixels.size == 0

    @classmethod
    def empty(cls) -> "Frame":
        return cls(pixels=None)

    @classmethod
    def from_bytes(cls, image_bytes: bytes) -> "Frame":
        """Decode an encoded image (JPEG, PNG, ...).

        Raises:
            InvalidFrameError: If the bytes cannot be decoded
        """
        if not image_bytes:
            return cls.empty()
        try:
            return cls(pixels=bytes_to_numpy_array(image_bytes))
        except ValueError as e:
            raise InvalidFrameError(f"Failed to decode frame: {e}") from e

    @classmethod
    def from_data_url(cls, data_url: Optional[str]) -> "Frame":
        """Decode a base64 data URL as sent by the browser client.

        ``"data:,"`` and blank strings give the empty frame.

        Raises:
            InvalidFrameError: If the URL is malformed or its image cannot be decoded
        """
        if is_empty_data_url(data_url):
            return cls.empty()
        try:
            image_bytes = data_url_to_bytes(data_url)
        except ValueError as e:
            raise InvalidFrameError(f"Invalid frame data: {e}") from e
        return cls.from_bytes(image_bytes)


class MatchResult(BaseModel):
    """Outcome of matching one embedding against the gallery."""
    label: str = Field(..., description="Matched label, or the unknown label")
    distance: float = Field(..., description="Euclidean distance to the closest gallery vector")
    matched: bool = Field(..., description="Whether the distance is within the match threshold")


class IdentityCreated(BaseModel):
    """A new identity was enrolled under the claimed name."""
    kind: Literal["identity_created"] = "identity_created"
    label: str


class IdentityExtended(BaseModel):
    """The face belongs to an enrolled identity; its embedding was appended."""
    kind: Literal["identity_extended"] = "identity_extended"
    label: str


class NoFaceDetected(BaseModel):
    """The frame contains no face; nothing was stored."""
    kind: Literal["no_face_detected"] = "no_face_detected"


class MultipleFacesDetected(BaseModel):
    """The frame contains more than one face; nothing was stored."""
    kind: Literal["multiple_faces_detected"] = "multiple_faces_detected"
    faces_count: int


class NameConflict(BaseModel):
    """The face belongs to an identity enrolled under another name; nothing was stored."""
    kind: Literal["name_conflict"] = "name_conflict"
    label: str
    claimed_name: str


class NameTaken(BaseModel):
    """A new face claimed a label already enrolled for someone else; nothing was stored."""
    kind: Literal["name_taken"] = "name_taken"
    label: str


EnrollmentOutcome = Union[
    IdentityCreated,
    IdentityExtended,
    NoFaceDetected,
    MultipleFacesDetected,
    NameConflict,
    NameTaken,
]


class LabelImportResult(BaseModel):
    """Result of seeding one label during a batch import."""
    label: str = Field(..., description="Imported label")
    status: Literal["created", "already_enrolled", "no_usable_faces"] = Field(
        ..., description="What happened to the label"
    )
    embeddings_count: int = Field(0, description="Embeddings written for the label")
    rejected_frames: int = Field(0, description="Frames without exactly one face")


class GalleryStats(BaseModel):
    """Size of the current gallery snapshot."""
    identities: int
    embeddings: int
