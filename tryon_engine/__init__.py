from .image_io import DecodeError, ImageDecodeError, decode, encode
from .models import (
    BoundingBox,
    EffectRequest,
    EyebrowBoxes,
    LandmarkSet,
    Point2D,
    ResolvedRegions,
    StageReport,
)
from .pipeline import TryOnPipeline, apply_effects, run_effects
from .regions import fallback_landmarks, resolve_lip_contour, resolve_regions

__all__ = [
    "BoundingBox",
    "DecodeError",
    "EffectRequest",
    "EyebrowBoxes",
    "ImageDecodeError",
    "LandmarkSet",
    "Point2D",
    "ResolvedRegions",
    "StageReport",
    "TryOnPipeline",
    "apply_effects",
    "decode",
    "encode",
    "fallback_landmarks",
    "resolve_lip_contour",
    "resolve_regions",
    "run_effects",
]
