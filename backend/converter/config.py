"""Application configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")

# Paths (override with env). Created on startup, not at import.
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR / "uploads")))
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", str(BASE_DIR / "converted")))
PUBLIC_DIR = Path(os.getenv("PUBLIC_DIR", str(BASE_DIR / "public")))

# Conversion constants
MAX_DIMENSION = 16000
QUALITY = 80
WATERMARK_OPACITY = 0.08
WATERMARK_FONT = os.getenv("WATERMARK_FONT", "DejaVuSans.ttf")
# Same ceiling as a 16383x16383 input; Pillow's own default rejects 20000x10000 uploads.
MAX_IMAGE_PIXELS = int(os.getenv("MAX_IMAGE_PIXELS", "268402689"))
# Unknown convertTo values: keep the source codec (default) or reject the batch.
STRICT_FORMATS = os.getenv("STRICT_FORMATS", "0").strip().lower() in ("1", "true", "yes")

# Concurrency (per request). Large images are memory heavy, keep this small.
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
# CORS: comma-separated origins, e.g. "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("converter")
