from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .compositors import (
    Color,
    add_curl_texture,
    brighten,
    darken_box,
    fill_box,
    fill_polygon,
    recolor_luminance_band,
)
from .config import Settings, get_settings
from .image_io import decode, encode
from .models import (
    EffectRequest,
    LandmarkSet,
    Point2D,
    ResolvedRegions,
    StageReport,
    StageStatus,
)
from .regions import fallback_landmarks, resolve_lip_contour, resolve_regions

logger = logging.getLogger(__name__)

# Makeup -> HairColor -> HairStyle, whatever order the requests arrive in.
STAGE_RANK = {
    "lipstick": (0, 0),
    "eyeMakeup": (0, 1),
    "hairColor": (1, 0),
    "hairStyle": (2, 0),
}

LIPSTICK_KEYWORDS = ("red", "classic")
LIPSTICK_COLOR: Color = (220, 20, 60)
LIP_BOX_PADDING = 5

EYE_MARGIN = 15
EYE_DARKEN_FACTOR = 0.5

HAIR_COLOR_PALETTE: Dict[str, Color] = {
    "blonde": (255, 220, 177),
    "brunette": (101, 67, 33),
    "black": (28, 28, 28),
    "red": (184, 66, 73),
    "auburn": (165, 42, 42),
    "silver": (192, 192, 192),
}
DEFAULT_HAIR_COLOR: Color = (150, 150, 150)
HAIR_LUMINANCE_LOW = 30
HAIR_LUMINANCE_HIGH = 200

CURL_FREQUENCY = 0.08
CURL_AMPLITUDE = 30.0
STRAIGHT_FACTOR = 1.15
STRAIGHT_CEILING = 220.0


def order_requests(requests: Sequence[EffectRequest]) -> List[EffectRequest]:
    return sorted(requests, key=lambda request: STAGE_RANK[request.kind])


def hair_color_for(parameter: str) -> Color:
    return HAIR_COLOR_PALETTE.get(parameter.strip().lower(), DEFAULT_HAIR_COLOR)


def _apply_lipstick(
    buffer: np.ndarray,
    regions: ResolvedRegions,
    parameter: str,
    lip_contour: Optional[Sequence[Point2D]],
    opacity: float,
) -> StageStatus:
    shade = parameter.lower()
    if not any(keyword in shade for keyword in LIPSTICK_KEYWORDS):
        return "noop"
    if lip_contour and len(lip_contour) >= 3:
        if fill_polygon(buffer, lip_contour, LIPSTICK_COLOR, opacity=opacity):
            return "applied"
        logger.debug("Lip contour covers no pixel centers; using lips box")
    if fill_box(buffer, regions.lips, LIPSTICK_COLOR, padding=LIP_BOX_PADDING, opacity=opacity):
        return "applied"
    return "skipped"


def _apply_eye_makeup(buffer: np.ndarray, regions: ResolvedRegions) -> StageStatus:
    eyes = (regions.leftEye, regions.rightEye)
    if any(eye.is_empty for eye in eyes):
        return "skipped"
    touched = [darken_box(buffer, eye, EYE_MARGIN, EYE_DARKEN_FACTOR) for eye in eyes]
    return "applied" if any(touched) else "skipped"


def _apply_hair_color(
    buffer: np.ndarray, regions: ResolvedRegions, parameter: str
) -> StageStatus:
    color = hair_color_for(parameter)
    written = recolor_luminance_band(
        buffer,
        regions.hairBand,
        color,
        HAIR_LUMINANCE_LOW,
        HAIR_LUMINANCE_HIGH,
    )
    return "applied" if written else "skipped"


def _apply_hair_style(
    buffer: np.ndarray, regions: ResolvedRegions, parameter: str
) -> StageStatus:
    style = parameter.lower()
    if "curly" in style:
        written = add_curl_texture(buffer, regions.hairBand, CURL_FREQUENCY, CURL_AMPLITUDE)
    elif "straight" in style:
        written = brighten(buffer, regions.hairBand, STRAIGHT_FACTOR, STRAIGHT_CEILING)
    else:
        return "noop"
    return "applied" if written else "skipped"


def run_effects(
    buffer: np.ndarray,
    regions: ResolvedRegions,
    requests: Sequence[EffectRequest],
    lip_contour: Optional[Sequence[Point2D]] = None,
    lipstick_opacity: float = 1.0,
) -> List[StageReport]:
    """Apply every request to ``buffer`` in stage order and report each outcome."""
    if buffer.dtype != np.uint8 or buffer.ndim != 3 or buffer.shape[2] not in (3, 4):
        raise ValueError("Pixel buffer must be a uint8 array of shape (H, W, 3|4)")

    reports: List[StageReport] = []
    for request in order_requests(requests):
        if request.kind == "lipstick":
            status = _apply_lipstick(
                buffer, regions, request.parameter, lip_contour, lipstick_opacity
            )
        elif request.kind == "eyeMakeup":
            status = _apply_eye_makeup(buffer, regions)
        elif request.kind == "hairColor":
            status = _apply_hair_color(buffer, regions, request.parameter)
        else:
            status = _apply_hair_style(buffer, regions, request.parameter)

        if status == "skipped":
            logger.info(f"Skipped {request.kind} ({request.parameter!r}): target region is empty")
        elif status == "noop":
            logger.debug(f"No rule for {request.kind} parameter {request.parameter!r}")
        reports.append(
            StageReport(kind=request.kind, parameter=request.parameter, status=status)
        )
    return reports


def apply_effects(
    buffer: np.ndarray,
    regions: ResolvedRegions,
    requests: Sequence[EffectRequest],
    lip_contour: Optional[Sequence[Point2D]] = None,
    lipstick_opacity: float = 1.0,
) -> np.ndarray:
    run_effects(buffer, regions, requests, lip_contour, lipstick_opacity)
    return buffer


class TryOnPipeline:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    def composite(
        self,
        buffer: np.ndarray,
        landmarks: Optional[LandmarkSet],
        requests: Sequence[EffectRequest],
    ) -> Tuple[np.ndarray, List[StageReport], ResolvedRegions]:
        h, w = buffer.shape[:2]
        if landmarks is None:
            landmarks = fallback_landmarks(w, h)
        elif (landmarks.imageWidth, landmarks.imageHeight) != (w, h):
            logger.warning(
                f"Landmarks describe a {landmarks.imageWidth}x{landmarks.imageHeight} image, "
                f"buffer is {w}x{h}; regions are clipped to the buffer"
            )
            if landmarks.face.is_empty:
                # the fallback layout must be centered on the real buffer
                landmarks = landmarks.model_copy(update={"imageWidth": w, "imageHeight": h})
        regions = resolve_regions(landmarks)
        reports = run_effects(
            buffer,
            regions,
            requests,
            lip_contour=resolve_lip_contour(landmarks),
            lipstick_opacity=self.settings.lipstick_opacity,
        )
        return buffer, reports, regions

    def run(
        self,
        image_bytes: bytes,
        landmarks: Optional[LandmarkSet],
        requests: Sequence[EffectRequest],
    ) -> Tuple[np.ndarray, List[StageReport], ResolvedRegions]:
        buffer = decode(image_bytes)
        return self.composite(buffer, landmarks, requests)

    def encode_image(self, buffer: np.ndarray) -> bytes:
        return encode(
            buffer,
            quality=self.settings.jpeg_quality,
            fmt=self.settings.output_format,
        )

    def process(
        self,
        image_bytes: bytes,
        landmarks: Optional[LandmarkSet],
        requests: Sequence[EffectRequest],
    ) -> bytes:
        buffer, _, _ = self.run(image_bytes, landmarks, requests)
        return self.encode_image(buffer)
