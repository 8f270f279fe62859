"""Pytest configuration and fixtures."""

import io
import random
import zipfile
from pathlib import Path

import pytest
from PIL import Image

from stepwright.models import Task
from stepwright.store import Storage
from stepwright.types import AssetPayload

# =============================================================================
# Image and Archive Builders
# =============================================================================


def make_png(width: int = 100, height: int = 100, color: str = "red") -> bytes:
    """Create a PNG image and return its bytes."""
    img = Image.new("RGB", (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def make_noise_png(width: int = 800, height: int = 600) -> bytes:
    """Create a PNG of random noise, which compresses badly."""
    img = Image.frombytes("RGB", (width, height), _noise_bytes(width * height * 3))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def _noise_bytes(count: int) -> bytes:
    return random.Random(42).randbytes(count)


def make_zip(entries: dict[str, bytes | str]) -> bytes:
    """Build an in-memory zip archive from name -> content."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            archive.writestr(name, data)
    return buffer.getvalue()


def make_task(task_id: str, step: int, workflow_id: str = "wf-1") -> Task:
    return Task(id=task_id, workflow_id=workflow_id, step_number=step, title=f"Task {task_id}")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def png_asset(png_bytes: bytes) -> AssetPayload:
    return AssetPayload(key="images/shot.png", mime_type="image/png", data=png_bytes)


@pytest.fixture
def sample_html() -> str:
    return """<html><head><style>body { color: red; }</style></head>
<body>
<h1>Install Guide</h1>
<p>Download the installer.</p>
<img src="images/shot.png">
<ul><li>Open it</li><li>Click next</li></ul>
<script>alert("x")</script>
</body></html>"""


@pytest.fixture
def sample_archive(sample_html: str) -> bytes:
    return make_zip(
        {
            "guide.html": sample_html,
            "images/shot.png": make_png(),
            "notes.txt": "ignored",
        }
    )


@pytest.fixture
def storage() -> Storage:
    """In-memory storage with no size limit."""
    return Storage.in_memory()


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the record store at a temporary directory."""
    directory = tmp_path / "data"
    monkeypatch.setenv("STEPWRIGHT_DATA_DIR", str(directory))
    monkeypatch.delenv("STEPWRIGHT_CONFIG", raising=False)
    monkeypatch.delenv("STEPWRIGHT_LOG_DIR", raising=False)
    return directory
