from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from .models import BoundingBox, EyebrowBoxes, LandmarkSet, Point2D, ResolvedRegions

logger = logging.getLogger(__name__)

# (x, y, width, height) as fractions of the face box.
FEATURE_RATIOS: Dict[str, Tuple[float, float, float, float]] = {
    "lips": (0.3, 0.7, 0.4, 0.1),
    "leftEye": (0.2, 0.35, 0.2, 0.08),
    "rightEye": (0.6, 0.35, 0.2, 0.08),
    "leftBrow": (0.18, 0.28, 0.22, 0.05),
    "rightBrow": (0.6, 0.28, 0.22, 0.05),
}

HAIR_BAND_ABOVE = 0.5
HAIR_BAND_BELOW = 0.4

FACE_MESH_POINT_COUNT = 468
LIPS_OUTER_INDICES: List[int] = [
    61, 185, 40, 39, 37, 0, 267, 269, 270, 409,
    291, 375, 321, 405, 314, 17, 84, 181, 91, 146,
]


def _sub_box(face: BoundingBox, feature: str) -> BoundingBox:
    fx, fy, fw, fh = FEATURE_RATIOS[feature]
    return BoundingBox(
        x=face.x + face.width * fx,
        y=face.y + face.height * fy,
        width=face.width * fw,
        height=face.height * fh,
    )


def fallback_face_box(width: int, height: int) -> BoundingBox:
    """Centered face estimate used when no face was located."""
    face_w = min(width * 0.4, height * 0.5)
    face_h = min(height * 0.6, width * 0.8)
    return BoundingBox(
        x=width / 2 - face_w / 2,
        y=height / 2 - face_h / 2,
        width=face_w,
        height=face_h,
    )


def proportional_landmarks(
    face: BoundingBox,
    width: int,
    height: int,
    detected: bool,
) -> LandmarkSet:
    return LandmarkSet(
        detected=detected,
        face=face,
        lips=_sub_box(face, "lips"),
        leftEye=_sub_box(face, "leftEye"),
        rightEye=_sub_box(face, "rightEye"),
        eyebrows=EyebrowBoxes(
            left=_sub_box(face, "leftBrow"),
            right=_sub_box(face, "rightBrow"),
        ),
        imageWidth=width,
        imageHeight=height,
    )


def fallback_landmarks(width: int, height: int) -> LandmarkSet:
    return proportional_landmarks(
        fallback_face_box(width, height), width, height, detected=False
    )


def derive_hair_band(face: BoundingBox, image_width: int) -> BoundingBox:
    """Band just above the face that overlaps the forehead.

    Hair is approximated by this rectangle rather than segmented.
    """
    top = max(0.0, face.y - face.height * HAIR_BAND_ABOVE)
    bottom = face.y + face.height * HAIR_BAND_BELOW
    return BoundingBox(
        x=0,
        y=top,
        width=image_width,
        height=max(0.0, bottom - top),
    )


def uses_detected_layout(landmarks: LandmarkSet) -> bool:
    """True when the detected boxes are used as given."""
    return landmarks.detected and not landmarks.face.is_empty


def resolve_regions(landmarks: LandmarkSet) -> ResolvedRegions:
    face = landmarks.face
    detected = uses_detected_layout(landmarks)
    if face.is_empty:
        if landmarks.detected:
            logger.warning(
                f"Detected face box is degenerate ({face.width}x{face.height}); using fallback layout"
            )
        face = fallback_face_box(landmarks.imageWidth, landmarks.imageHeight)
        detected = False

    if detected:
        source = landmarks
    else:
        source = proportional_landmarks(
            face, landmarks.imageWidth, landmarks.imageHeight, detected=False
        )

    return ResolvedRegions(
        face=face,
        lips=source.lips,
        leftEye=source.leftEye,
        rightEye=source.rightEye,
        eyebrows=source.eyebrows,
        hairBand=derive_hair_band(face, landmarks.imageWidth),
    )


def _usable(points: Sequence[Point2D]) -> List[Point2D]:
    return [pt for pt in points if math.isfinite(pt.x) and math.isfinite(pt.y)]


def resolve_lip_contour(landmarks: LandmarkSet) -> Optional[List[Point2D]]:
    """Ordered outer-lip polygon, or None when only boxes can be used.

    A full face mesh is reduced to its outer-lip ring; any shorter sequence
    is taken to already be the lip contour.
    """
    points = landmarks.contourPoints
    if not uses_detected_layout(landmarks) or not points:
        return None
    if len(points) >= FACE_MESH_POINT_COUNT:
        points = [points[i] for i in LIPS_OUTER_INDICES]
    contour = _usable(points)
    if len(contour) < 3:
        return None
    return contour
