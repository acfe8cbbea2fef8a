"""
Image processing utility functions.
"""
import base64
import binascii
from typing import Optional

import cv2
import numpy as np

# What a browser canvas yields for toDataURL() when it has no content
EMPTY_DATA_URL = "data:,"


def bytes_to_numpy_array(image_bytes: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    """Convert image bytes to a numpy array.

    Args:
        image_bytes: Raw image bytes
        flags: OpenCV imread flags (default: COLOR)

    Returns:
        numpy.ndarray: Image as a numpy array

    Raises:
        ValueError: If the image cannot be decoded
    """
    np_array = np.frombuffer(image_bytes, np.uint8)

    img = cv2.imdecode(np_array, flags)

    if img is None:
        raise ValueError("Failed to decode image bytes")

    return img


def is_empty_data_url(data_url: Optional[str]) -> bool:
    """Tell whether a data URL carries no visual content."""
    if data_url is None:
        return True
    stripped = data_url.strip()
    return stripped == "" or stripped == EMPTY_DATA_URL


def data_url_to_bytes(data_url: str) -> bytes:
    """Extract the binary payload of a base64 ``data:`` URL.

    Bare base64 strings (no ``data:`` header) are accepted too.

    Args:
        data_url: String such as ``data:image/jpeg;base64,/9j/4AAQ...``

    Returns:
        bytes: Decoded payload

    Raises:
        ValueError: If the URL is not base64 encoded or the payload is malformed
    """
    payload = data_url.strip()
    if payload.startswith("data:"):
        header, sep, payload = payload.partition(",")
        if not sep:
            raise ValueError("Data URL has no payload separator")
        if not header.endswith(";base64"):
            raise ValueError("Only base64 encoded data URLs are supported")

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Malformed base64 payload: {e}") from e


def encode_data_url(image: np.ndarray, extension: str = ".jpg") -> str:
    """Encode an image array as a base64 data URL."""
    ok, buffer = cv2.imencode(extension, image)
    if not ok:
        raise ValueError(f"Failed to encode image as {extension}")
    mime = "image/png" if extension == ".png" else "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(buffer.tobytes()).decode('ascii')}"
