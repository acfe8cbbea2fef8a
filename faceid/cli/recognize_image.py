"""CLI tool for face recognition with visualization."""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from faceid.core.container import ServiceContainer
from faceid.core.exceptions import FaceRecognitionError
from faceid.core.logging import get_logger, setup_logging
from faceid.domain.entities.face import FaceObservation
from faceid.domain.value_objects.recognition import Frame, MatchResult

logger = get_logger(__name__)

MATCH_COLOR = (0, 180, 0)  # Darker green
UNKNOWN_COLOR = (0, 0, 200)  # Red
TEXT_COLOR = (255, 255, 255)  # White


def draw_matches(
    image: np.ndarray,
    observations: List[FaceObservation],
    matches: List[MatchResult],
) -> np.ndarray:
    """
    Draw bounding boxes with labels and distances on a copy of the image.

    Args:
        image: Original image as numpy array
        observations: Detected faces
        matches: Match result for each observation, same order

    Returns:
        Annotated copy of the image
    """
    img_draw = image.copy()
    height, width = img_draw.shape[:2]

    font_scale = 0.6
    thickness = 2
    padding = 8

    for observation, match in zip(observations, matches):
        bbox = observation.bounding_box
        x1 = int(bbox.left * width)
        y1 = int(bbox.top * height)
        x2 = int((bbox.left + bbox.width) * width)
        y2 = int((bbox.top + bbox.height) * height)
        color = MATCH_COLOR if match.matched else UNKNOWN_COLOR

        cv2.rectangle(img_draw, (x1, y1), (x2, y2), color, thickness)

        text = f"{match.label} ({match.distance:.2f})" if match.matched else match.label
        (text_width, text_height), _ = cv2.getTextSize(
            text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness
        )
        cv2.rectangle(
            img_draw,
            (x1, max(y1 - text_height - padding * 2, 0)),
            (x1 + text_width + padding, y1),
            color,
            -1
        )
        cv2.putText(
            img_draw,
            text,
            (x1 + padding // 2, max(y1 - padding, text_height)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            TEXT_COLOR,
            thickness
        )

    return img_draw


async def recognize_image(image_path: str, output_path: Optional[Path] = None) -> int:
    """
    Recognize and annotate the faces in an image file.

    Args:
        image_path: Path to the image file
        output_path: Where to write the annotated image; next to the input when omitted

    Returns:
        Process exit code
    """
    image_file = Path(image_path)
    if not image_file.exists():
        logger.error("Image file not found", path=image_path)
        return 1

    container = ServiceContainer()
    try:
        frame = Frame.from_bytes(image_file.read_bytes())
        await container.initialize()
        session = container.recognition_session

        observations = await session.detect(frame)
        gallery = container.gallery_service.snapshot
        matches = [gallery.find_best_match(o.embedding) for o in observations]
    except FaceRecognitionError as e:
        logger.error("Face recognition failed", error=str(e), path=image_path)
        return 1
    finally:
        await container.cleanup()

    logger.info(
        "Face recognition completed",
        num_faces=len(observations),
        image_path=image_path
    )
    for i, (observation, match) in enumerate(zip(observations, matches), 1):
        logger.info(
            f"Face {i} details",
            label=match.label,
            distance=f"{match.distance:.3f}",
            confidence=f"{observation.confidence:.2f}",
        )

    if frame.is_empty:
        return 0

    annotated = draw_matches(frame.pixels, observations, matches)
    output_path = output_path or image_file.parent / f"{image_file.stem}_recognized{image_file.suffix}"
    cv2.imwrite(str(output_path), annotated)
    logger.info("Saved annotated image", path=str(output_path))
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Recognize and annotate the faces in an image")
    parser.add_argument("image_path", help="Path to the image file")
    parser.add_argument("--output", help="Path of the annotated image")
    args = parser.parse_args()

    setup_logging()
    output = Path(args.output) if args.output else None
    sys.exit(asyncio.run(recognize_image(args.image_path, output)))


if __name__ == "__main__":
    main()
