import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from gstbill import data  # noqa: E402


@pytest.fixture
def db(tmp_path):
    engine = data.init_db(f"sqlite:///{(tmp_path / 'billing.db').as_posix()}")
    yield engine
    engine.dispose()


@pytest.fixture
def png_bytes() -> bytes:
    buf = BytesIO()
    Image.new("RGB", (120, 40), (20, 20, 120)).save(buf, format="PNG")
    return buf.getvalue()
