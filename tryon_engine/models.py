from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EffectKind = Literal["lipstick", "eyeMakeup", "hairColor", "hairStyle"]
StageStatus = Literal["applied", "skipped", "noop"]


class BoundingBox(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x: float = 0
    y: float = 0
    width: float = Field(default=0, ge=0)
    height: float = Field(default=0, ge=0)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


class Point2D(BaseModel):
    x: float
    y: float
    z: Optional[float] = None


class EyebrowBoxes(BaseModel):
    left: BoundingBox = BoundingBox()
    right: BoundingBox = BoundingBox()


class LandmarkSet(BaseModel):
    """Face locator output: every box is populated, detected or not."""

    detected: bool = False
    face: BoundingBox
    lips: BoundingBox
    leftEye: BoundingBox
    rightEye: BoundingBox
    eyebrows: EyebrowBoxes = EyebrowBoxes()
    contourPoints: Optional[List[Point2D]] = None
    imageWidth: int = Field(gt=0)
    imageHeight: int = Field(gt=0)


class ResolvedRegions(BaseModel):
    face: BoundingBox
    lips: BoundingBox
    leftEye: BoundingBox
    rightEye: BoundingBox
    eyebrows: EyebrowBoxes
    hairBand: BoundingBox


class EffectRequest(BaseModel):
    kind: EffectKind
    parameter: str = ""


class StageReport(BaseModel):
    kind: EffectKind
    parameter: str
    status: StageStatus


class TryOnConfig(BaseModel):
    effects: List[EffectRequest] = Field(default_factory=list)
    landmarks: Optional[LandmarkSet] = None


class TryOnResponse(BaseModel):
    image: str
    effects: List[StageReport] = Field(default_factory=list)
    regions: Optional[ResolvedRegions] = None
    landmarksDetected: bool = False
