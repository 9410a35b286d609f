"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from converter import config as app_config
from converter.api.routes import router
from converter.config import CORS_ORIGINS, logger as config_logger
from converter.storage import get_output_store

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_output_store().ensure_directory()
    app_config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    app_config.PUBLIC_DIR.mkdir(parents=True, exist_ok=True)
    config_logger.info("Converter API started (outputs in %s)", app_config.OUTPUT_DIR)
    yield
    config_logger.info("Converter API shutting down")


app = FastAPI(
    title="Batch Image Converter",
    description="Resize, watermark and convert batches of images; download them as one zip.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)
# Directories are created in lifespan, so skip the import-time check.
app.mount("/converted", StaticFiles(directory=app_config.OUTPUT_DIR, check_dir=False), name="converted")
app.mount("/", StaticFiles(directory=app_config.PUBLIC_DIR, html=True, check_dir=False), name="public")


if __name__ == "__main__":
    import uvicorn
    from converter.config import HOST, PORT
    uvicorn.run("converter.main:app", host=HOST, port=PORT, reload=True)
