import pytest
import sys
from pathlib import Path
from PIL import Image

# Add src to sys.path so we can import panel_export
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from panel_export.staging import Document, ImageNode


def row_color(y: int) -> tuple[int, int, int]:
    """Unique colour per content row, so captured tiles can be traced back."""
    return (y % 256, (y // 256) % 256, 200)


def make_striped_image(width: int, height: int) -> Image.Image:
    img = Image.new("RGB", (width, height))
    for y in range(height):
        img.paste(row_color(y), (0, y, width, y + 1))
    return img


# Common test fixtures
@pytest.fixture
def striped_image():
    """400x2000 image whose rows encode their own y coordinate."""
    return make_striped_image(400, 2000)


@pytest.fixture
def document(striped_image):
    """Document holding the striped image under the default content id."""
    return Document([ImageNode("output", striped_image)])


@pytest.fixture
def short_document():
    """Document holding content that fits in one tile."""
    return Document([ImageNode("output", make_striped_image(400, 500))])
