"""
Run the backend with ``python -m tryon_engine``.
"""
import uvicorn

from .config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("tryon_engine.main:app", host=settings.host, port=settings.port)
