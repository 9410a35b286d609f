import os
import sys
import tempfile
from pathlib import Path

import pytest

# Ensure the project root (backend/) is on sys.path so tests can import the `converter` package.
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

# Point the app's directories at a scratch location before converter.config is imported.
_SCRATCH = Path(tempfile.mkdtemp(prefix="converter-tests-"))
for _name in ("UPLOAD_DIR", "OUTPUT_DIR", "PUBLIC_DIR"):
    os.environ[_name] = str(_SCRATCH / _name.lower())

from PIL import Image  # noqa: E402

from converter.conversion.models import UploadedImage  # noqa: E402
from converter.storage import OutputStore, TrackedOutputs  # noqa: E402


@pytest.fixture
def upload_dir(tmp_path):
    d = tmp_path / "uploads"
    d.mkdir()
    return d


@pytest.fixture
def store(tmp_path):
    s = OutputStore(tmp_path / "converted", TrackedOutputs())
    s.ensure_directory()
    return s


@pytest.fixture
def make_upload(upload_dir):
    """Write a generated image into the upload dir and describe it as a staged upload."""

    def _make(name="photo.png", size=(64, 48), color=(200, 30, 30), mode="RGB", fmt=None):
        path = upload_dir / name
        Image.new(mode, size, color).save(path, format=fmt)
        return UploadedImage(path=path, filename=name, size=path.stat().st_size)

    return _make


@pytest.fixture
def bad_upload(upload_dir):
    path = upload_dir / "broken.png"
    path.write_bytes(b"this is not an image")
    return UploadedImage(path=path, filename="broken.png", size=path.stat().st_size)
