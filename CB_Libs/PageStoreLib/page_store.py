"""
Coloring page storage.

Each page lives in its own directory under <base_dir>/Pages/<page id>/:

- page.json: page metadata
- outline.png: line art (never rewritten after creation)
- working.png: current color layer
- thumbnail.png: small render of the page for listings
- source.png: original photo, when the page was made from one

Paths inside page.json are relative to the page directory so a Pages folder
can be moved as a whole.

Functions:
    create_page: Store a new page from outline bytes
    list_pages: All readable pages, newest first
    load_page: Metadata of one page
    load_layers: Decoded outline and color layers of a page
    save_working_layer: Persist the color layer and refresh the thumbnail
    delete_page: Remove a page and its files
"""

import json
import logging
import shutil
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image

from CB_Libs.FillLib.flood_fill import create_empty_color_layer
from CB_Libs.FillLib.strokes import Stroke
from CB_Libs.RasterLib.raster_buffer import RasterBuffer, decode_image, encode_png
from CB_Libs.RenderLib.page_renderer import composite
from CB_Libs.constants import (
    FIELD_CREATED_AT,
    FIELD_HEIGHT,
    FIELD_OUTLINE_PATH,
    FIELD_PAGE_ID,
    FIELD_SCHEMA_VERSION,
    FIELD_SOURCE_PATH,
    FIELD_THUMBNAIL_PATH,
    FIELD_WIDTH,
    FIELD_WORKING_PATH,
    OUTLINE_FILE_NAME,
    PAGE_METADATA_FILE,
    PAGES_DIR_NAME,
    SCHEMA_VERSION,
    SOURCE_FILE_NAME,
    THUMBNAIL_FILE_NAME,
    THUMBNAIL_MAX_SIZE,
    WORKING_FILE_NAME,
)

logger = logging.getLogger(__name__)

SAFE_ID_CHARS = "-_"


@dataclass
class ColoringPage:
    """Metadata of a stored coloring page.

    Attributes:
        id: Unique page identifier (also the directory name)
        created_at: ISO timestamp of creation
        width: Page width in pixels
        height: Page height in pixels
        outline_image_path: Outline file, relative to the page directory
        working_image_path: Color layer file, relative to the page directory
        thumbnail_path: Thumbnail file, relative to the page directory
        source_image_path: Source photo file, if any
    """
    id: str
    created_at: str
    width: int
    height: int
    outline_image_path: str = OUTLINE_FILE_NAME
    working_image_path: str = WORKING_FILE_NAME
    thumbnail_path: str = THUMBNAIL_FILE_NAME
    source_image_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            FIELD_SCHEMA_VERSION: SCHEMA_VERSION,
            FIELD_PAGE_ID: self.id,
            FIELD_CREATED_AT: self.created_at,
            FIELD_WIDTH: self.width,
            FIELD_HEIGHT: self.height,
            FIELD_OUTLINE_PATH: self.outline_image_path,
            FIELD_WORKING_PATH: self.working_image_path,
            FIELD_THUMBNAIL_PATH: self.thumbnail_path,
            FIELD_SOURCE_PATH: self.source_image_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColoringPage":
        """
        Create from dictionary.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        try:
            page = cls(
                id=str(data[FIELD_PAGE_ID]),
                created_at=str(data[FIELD_CREATED_AT]),
                width=int(data[FIELD_WIDTH]),
                height=int(data[FIELD_HEIGHT]),
                outline_image_path=str(data.get(FIELD_OUTLINE_PATH) or OUTLINE_FILE_NAME),
                working_image_path=str(data.get(FIELD_WORKING_PATH) or WORKING_FILE_NAME),
                thumbnail_path=str(data.get(FIELD_THUMBNAIL_PATH) or THUMBNAIL_FILE_NAME),
                source_image_path=data.get(FIELD_SOURCE_PATH) or None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid page metadata: {e}") from e

        if page.width < 1 or page.height < 1:
            raise ValueError(f"Invalid page size {page.width}x{page.height}")
        return page


def get_pages_dir(base_dir: Path) -> Path:
    pages_dir = Path(base_dir) / PAGES_DIR_NAME
    pages_dir.mkdir(parents=True, exist_ok=True)
    return pages_dir


def get_page_dir(base_dir: Path, page_id: str) -> Path:
    """
    Directory of a page.

    Raises:
        ValueError: If page_id contains anything but letters, digits, '-' or '_'
    """
    if not page_id or not all(c.isalnum() or c in SAFE_ID_CHARS for c in page_id):
        raise ValueError(f"Invalid page id: {page_id!r}")
    return get_pages_dir(base_dir) / page_id


def _write_metadata(page_dir: Path, page: ColoringPage) -> None:
    (page_dir / PAGE_METADATA_FILE).write_text(json.dumps(page.to_dict(), indent=2), encoding="utf-8")


def _write_thumbnail(path: Path, color_layer: RasterBuffer, outline_layer: RasterBuffer,
                     strokes: Sequence[Stroke] = ()) -> None:
    thumbnail = composite(color_layer, outline_layer, strokes).to_image()
    thumbnail.thumbnail((THUMBNAIL_MAX_SIZE, THUMBNAIL_MAX_SIZE), Image.Resampling.LANCZOS)
    path.write_bytes(encode_png(thumbnail))


def create_page(
    base_dir: Path,
    outline_png: bytes,
    source_image: Optional[bytes] = None,
    working_png: Optional[bytes] = None,
) -> ColoringPage:
    """
    Store a new coloring page.

    Args:
        base_dir: Base directory containing the Pages folder
        outline_png: Encoded line art
        source_image: Encoded photo the line art was made from, if any
        working_png: Encoded color layer; a blank layer is stored if None

    Returns:
        Metadata of the created page

    Raises:
        DecodeFailure: If any of the images cannot be decoded
        ValueError: If the color layer size differs from the outline
    """
    outline = RasterBuffer.from_png(outline_png)
    if working_png is not None:
        working = RasterBuffer.from_png(working_png)
    else:
        working = create_empty_color_layer(outline.width, outline.height)
    if working.size != outline.size:
        raise ValueError(f"Layer size mismatch: color {working.size} vs outline {outline.size}")

    page_id = uuid.uuid4().hex
    page_dir = get_page_dir(base_dir, page_id)
    page_dir.mkdir(parents=True, exist_ok=False)

    page = ColoringPage(
        id=page_id,
        created_at=datetime.now().isoformat(timespec="seconds"),
        width=outline.width,
        height=outline.height,
    )

    (page_dir / page.outline_image_path).write_bytes(outline.to_png())
    (page_dir / page.working_image_path).write_bytes(working.to_png())
    _write_thumbnail(page_dir / page.thumbnail_path, working, outline)
    if source_image is not None:
        page.source_image_path = SOURCE_FILE_NAME
        (page_dir / SOURCE_FILE_NAME).write_bytes(encode_png(decode_image(source_image)))

    _write_metadata(page_dir, page)
    logger.info(f"Created page {page_id} ({page.width}x{page.height})")
    return page


def load_page(base_dir: Path, page_id: str) -> ColoringPage:
    """
    Load the metadata of one page.

    Raises:
        FileNotFoundError: If the page does not exist
        ValueError: If the metadata is unreadable or invalid
    """
    metadata_path = get_page_dir(base_dir, page_id) / PAGE_METADATA_FILE
    try:
        payload = json.loads(metadata_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Corrupt page metadata in {metadata_path}: {e}") from e

    if not isinstance(payload, dict):
        raise ValueError(f"Corrupt page metadata in {metadata_path}")
    return ColoringPage.from_dict(payload)


def list_pages(base_dir: Path) -> List[ColoringPage]:
    """All readable pages, newest first. Unreadable pages are skipped."""
    pages: List[ColoringPage] = []
    for page_dir in sorted(get_pages_dir(base_dir).iterdir()):
        if not (page_dir / PAGE_METADATA_FILE).is_file():
            continue
        try:
            pages.append(load_page(base_dir, page_dir.name))
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable page {page_dir.name}: {e}")

    pages.sort(key=lambda page: page.created_at, reverse=True)
    return pages


def load_layers(base_dir: Path, page: ColoringPage) -> Tuple[RasterBuffer, RasterBuffer]:
    """
    Decode the outline and color layers of a page.

    Returns:
        (outline_layer, color_layer)

    Raises:
        DecodeFailure: If either file is corrupt
        FileNotFoundError: If either file is missing
    """
    page_dir = get_page_dir(base_dir, page.id)
    outline = RasterBuffer.from_png((page_dir / page.outline_image_path).read_bytes())
    color = RasterBuffer.from_png((page_dir / page.working_image_path).read_bytes())
    return outline, color


def save_working_layer(
    base_dir: Path,
    page: ColoringPage,
    color_layer: RasterBuffer,
    strokes: Sequence[Stroke] = (),
) -> Path:
    """
    Persist the color layer and refresh the thumbnail.

    Raises:
        ValueError: If the color layer does not match the page size
    """
    if color_layer.size != (page.width, page.height):
        raise ValueError(
            f"Color layer {color_layer.size} does not match page {page.width}x{page.height}"
        )

    page_dir = get_page_dir(base_dir, page.id)
    working_path = page_dir / page.working_image_path
    working_path.write_bytes(color_layer.to_png())

    outline = RasterBuffer.from_png((page_dir / page.outline_image_path).read_bytes())
    _write_thumbnail(page_dir / page.thumbnail_path, color_layer, outline, strokes)
    logger.debug(f"Saved working layer of page {page.id}")
    return working_path


def delete_page(base_dir: Path, page_id: str) -> bool:
    """
    Remove a page directory.

    Returns:
        True if the page existed and was removed
    """
    page_dir = get_page_dir(base_dir, page_id)
    if not page_dir.is_dir():
        return False
    shutil.rmtree(page_dir)
    logger.info(f"Deleted page {page_id}")
    return True
