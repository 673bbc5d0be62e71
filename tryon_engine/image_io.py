from __future__ import annotations

import base64
import binascii
import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = {
    "jpeg": (".jpg", "image/jpeg"),
    "png": (".png", "image/png"),
}


class DecodeError(ValueError):
    """Source bytes could not be turned into a pixel buffer."""


ImageDecodeError = DecodeError


def decode(data: bytes) -> np.ndarray:
    """Decode an encoded image into an RGBA ``uint8`` buffer."""
    if not data:
        raise DecodeError("Empty image payload")
    array = np.frombuffer(data, np.uint8)
    try:
        image = cv2.imdecode(array, cv2.IMREAD_UNCHANGED)
    except cv2.error as exc:
        raise DecodeError(f"Failed to decode image: {exc}") from exc
    if image is None:
        raise DecodeError("Unsupported image format")

    if image.dtype == np.uint16:
        image = (image // 257).astype(np.uint8)
    elif image.dtype != np.uint8:
        raise DecodeError(f"Unsupported sample type: {image.dtype}")

    logger.debug(f"Decoded image {image.shape[1]}x{image.shape[0]}")
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    channels = image.shape[2]
    if channels == 1:
        return cv2.cvtColor(image[..., 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    raise DecodeError(f"Unsupported channel count: {channels}")


def decode_data_url(url: str) -> np.ndarray:
    """Decode a ``data:image/...;base64,`` URL (or bare base64 text)."""
    payload = url.strip()
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        if ";base64" not in header:
            raise DecodeError("Only base64 data URLs are supported")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 image payload: {exc}") from exc
    return decode(data)


def encode(buffer: np.ndarray, quality: float = 0.9, fmt: str = "jpeg") -> bytes:
    """Encode an RGBA (or RGB) buffer; ``quality`` only affects JPEG."""
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {fmt}")
    if not 0 < quality <= 1:
        raise ValueError(f"JPEG quality must be in (0, 1], got {quality}")
    if buffer.dtype != np.uint8 or buffer.ndim != 3 or buffer.shape[2] not in (3, 4):
        raise ValueError("Buffer must be a uint8 array of shape (H, W, 3|4)")

    ext, _ = OUTPUT_FORMATS[fmt]
    buffer = np.ascontiguousarray(buffer)
    has_alpha = buffer.shape[2] == 4
    if fmt == "png" and has_alpha:
        image = cv2.cvtColor(buffer, cv2.COLOR_RGBA2BGRA)
        params = []
    else:
        code = cv2.COLOR_RGBA2BGR if has_alpha else cv2.COLOR_RGB2BGR
        image = cv2.cvtColor(buffer, code)
        params = [int(cv2.IMWRITE_JPEG_QUALITY), int(round(quality * 100))] if fmt == "jpeg" else []

    success, encoded = cv2.imencode(ext, image, params)
    if not success:
        raise ValueError("Failed to encode image")
    return encoded.tobytes()


def to_data_url(data: bytes, fmt: str = "jpeg") -> str:
    _, mime = OUTPUT_FORMATS[fmt]
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
