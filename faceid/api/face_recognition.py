"""Face recognition API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Response, status

from faceid.api.models.face import (
    EnrollmentRequest,
    EnrollmentResponse,
    RecognitionRequest,
    RecognitionResponse,
)
from faceid.core.exceptions import (
    CorruptEmbeddingError,
    DetectorFailureError,
    DetectorTimeoutError,
    FaceRecognitionError,
    IdentityExistsError,
    IdentityNotFoundError,
    InvalidFrameError,
    StoreUnavailableError,
)
from faceid.core.logging import get_logger
from faceid.domain.value_objects.recognition import Frame, NameTaken
from faceid.infrastructure.dependencies import (
    get_enrollment_workflow,
    get_recognition_session,
)
from faceid.services.enrollment import EnrollmentWorkflow
from faceid.services.recognition_session import RecognitionSession

logger = get_logger(__name__)
router = APIRouter(
    tags=["face-recognition"],
    responses={
        400: {"description": "Invalid frame"},
        500: {"description": "Internal server error"},
        502: {"description": "Face detector failure"},
        409: {"description": "Label already taken"},
        503: {"description": "Embedding store unavailable"},
        504: {"description": "Face detector timeout"},
    }
)


def _to_http_exception(error: FaceRecognitionError, action: str) -> HTTPException:
    """Map core failures to HTTP errors."""
    if isinstance(error, InvalidFrameError):
        logger.warning("Invalid frame", action=action, error=str(error))
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, DetectorTimeoutError):
        logger.error("Face detector timed out", action=action, error=str(error))
        return HTTPException(status_code=504, detail="Face detection timed out")
    if isinstance(error, DetectorFailureError):
        logger.error("Face detector failed", action=action, error=str(error))
        return HTTPException(status_code=502, detail="Error processing frame")
    if isinstance(error, (IdentityExistsError, IdentityNotFoundError)):
        logger.warning("Store rejected identity write", action=action, error=str(error))
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, StoreUnavailableError):
        logger.error("Embedding store unavailable", action=action, error=str(error))
        return HTTPException(status_code=503, detail="Labeled face embeddings not available")
    if isinstance(error, CorruptEmbeddingError):
        logger.error("Corrupt embedding", action=action, error=str(error))
        return HTTPException(status_code=500, detail="Stored face data is corrupt")
    logger.error("Face recognition failed", action=action, error=str(error), exc_info=True)
    return HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/recognize",
    response_model=RecognitionResponse,
    summary="Recognize faces in a frame",
    description="Labels every face in a frame with its enrolled name, or \"unknown\".",
    responses={
        200: {
            "description": "Faces recognized",
            "content": {
                "application/json": {
                    "example": {"names": ["alice", "unknown"]}
                }
            },
        },
    },
)
async def recognize_faces(
    request: RecognitionRequest,
    session: RecognitionSession = Depends(get_recognition_session)
) -> RecognitionResponse:
    """Recognize the faces in a frame.

    Args:
        request: Recognition request containing the frame
        session: Recognition session provided by dependency injection

    Returns:
        RecognitionResponse with one label per detected face

    Raises:
        HTTPException: If the frame is invalid or processing fails
    """
    try:
        frame = Frame.from_data_url(request.frame_data)
        names = await session.recognize(frame)
        return RecognitionResponse(names=names)

    except FaceRecognitionError as e:
        raise _to_http_exception(e, "recognize")
    except Exception as e:
        logger.error("Unexpected error during face recognition",
                     error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Error processing frame")


@router.post(
    "/enroll",
    response_model=EnrollmentResponse,
    summary="Enroll the face in a frame",
    description=(
        "Registers the single face in a frame. A face that matches an enrolled "
        "identity extends that identity; a new face is enrolled under the given name."
    ),
    responses={
        200: {
            "description": "Enrollment processed",
            "content": {
                "application/json": {
                    "example": {
                        "outcome": "identity_created",
                        "label": "bob",
                        "message": "New user created",
                        "names": [],
                    }
                }
            },
        },
    },
)
async def enroll_face(
    request: EnrollmentRequest,
    response: Response,
    workflow: EnrollmentWorkflow = Depends(get_enrollment_workflow)
) -> EnrollmentResponse:
    """Enroll the face in a frame under a name.

    Args:
        request: Enrollment request containing the name and the frame
        response: Outgoing response, set to 409 when the name is taken
        workflow: Enrollment workflow provided by dependency injection

    Returns:
        EnrollmentResponse describing the outcome

    Raises:
        HTTPException: If the frame is invalid or processing fails
    """
    try:
        frame = Frame.from_data_url(request.frame_data)
        outcome = await workflow.enroll(frame, request.name)
        if isinstance(outcome, NameTaken):
            response.status_code = status.HTTP_409_CONFLICT
        return EnrollmentResponse.from_outcome(outcome)

    except FaceRecognitionError as e:
        raise _to_http_exception(e, "enroll")
    except Exception as e:
        logger.error("Unexpected error during enrollment",
                     error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
