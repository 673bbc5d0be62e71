from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .config import get_settings
from .image_io import DecodeError, to_data_url
from .models import LandmarkSet, ResolvedRegions, TryOnConfig, TryOnResponse
from .pipeline import TryOnPipeline
from .regions import resolve_regions, uses_detected_layout

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Try-On Compositing Backend", version="1.0.0")
pipeline = TryOnPipeline(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "ok"}


async def _read_upload(upload: UploadFile) -> bytes:
    data = await upload.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty image payload")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Image exceeds {settings.max_upload_bytes} bytes",
        )
    return data


@app.post("/api/tryon/regions", response_model=ResolvedRegions)
async def resolve(landmarks: LandmarkSet) -> ResolvedRegions:
    """Resolve the target region of every feature for a landmark set."""
    return resolve_regions(landmarks)


@app.post("/api/tryon/apply", response_model=TryOnResponse)
async def apply_try_on(
    image: UploadFile = File(...),
    tryOnConfig: str = Form("{}"),
) -> TryOnResponse:
    """Composite the requested effects onto the uploaded image."""
    try:
        config = TryOnConfig.model_validate_json(tryOnConfig)
    except ValidationError as exc:
        logger.error(f"Invalid tryOnConfig: {exc}")
        raise HTTPException(status_code=400, detail=f"Invalid tryOnConfig: {exc.errors()}") from exc

    data = await _read_upload(image)
    try:
        buffer, reports, regions = pipeline.run(data, config.landmarks, config.effects)
        encoded = pipeline.encode_image(buffer)
    except DecodeError as exc:
        logger.warning(f"Could not decode upload {image.filename!r}: {exc}")
        raise HTTPException(status_code=400, detail="Could not process image") from exc
    except Exception as exc:
        logger.error(f"Error applying try-on effects: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error applying try-on effects: {str(exc)}") from exc

    return TryOnResponse(
        image=to_data_url(encoded, settings.output_format),
        effects=reports,
        regions=regions,
        landmarksDetected=bool(config.landmarks and uses_detected_layout(config.landmarks)),
    )
