"""
Exporting finished coloring pages to PNG or printable PDF.

Output filenames support delimited tags (case-insensitive):
- {DATE} or {DATE:format} - Current date (default: YYYY-MM-DD)
- {TIME} or {TIME:format} - Current time (default: HH-MM-SS)
- {TIMESTAMP} - Milliseconds since the epoch

When the resolved path has no extension the format's extension is added.

Classes:
    PageExportConfig: Export settings
    PageExporter: Filename resolution, path validation and writing

Functions:
    export_page: Render a page and export it in one call
"""

import logging
import re
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from PIL import Image

from CB_Libs.FillLib.strokes import Stroke
from CB_Libs.RasterLib.raster_buffer import RasterBuffer
from CB_Libs.RenderLib.page_renderer import composite
from CB_Libs.constants import (
    DEFAULT_EXPORT_FORMAT,
    DEFAULT_EXPORT_PATH,
    PAPER_COLOR_RGBA,
    PDF_A4_SIZE,
    PDF_DPI,
    PDF_MARGIN,
    SUPPORTED_EXPORT_FORMATS,
)

logger = logging.getLogger(__name__)


@dataclass
class PageExportConfig:
    """Configuration for page export.

    Attributes:
        output_path: Output path or filename with optional tags
        export_format: PNG or PDF (default: PNG)
        create_directories: Create output directories if they don't exist (default: True)
        overwrite: Overwrite existing files (default: False)
        base_directory: Optional absolute directory outputs must stay inside
        pdf_margin: Blank border around the page on the PDF sheet, in pixels
        pdf_dpi: Resolution recorded in the PDF
    """
    output_path: str = DEFAULT_EXPORT_PATH
    export_format: str = DEFAULT_EXPORT_FORMAT
    create_directories: bool = True
    overwrite: bool = False
    base_directory: Optional[str] = None
    pdf_margin: int = PDF_MARGIN
    pdf_dpi: int = PDF_DPI

    def __post_init__(self):
        self.export_format = self.export_format.upper()
        if self.export_format not in SUPPORTED_EXPORT_FORMATS:
            raise ValueError(
                f"Unsupported export format '{self.export_format}', "
                f"expected one of {sorted(SUPPORTED_EXPORT_FORMATS)}"
            )
        if self.pdf_margin < 0 or 2 * self.pdf_margin >= min(PDF_A4_SIZE):
            raise ValueError(f"pdf_margin out of range: {self.pdf_margin}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageExportConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)

    @property
    def extension(self) -> str:
        return f".{self.export_format.lower()}"


class PageExporter:
    """Writes rendered pages to disk."""

    DATE_PATTERN = r'\{DATE(?::([^\}]*))?\}'
    TIME_PATTERN = r'\{TIME(?::([^\}]*))?\}'
    TIMESTAMP_PATTERN = r'\{TIMESTAMP\}'

    DEFAULT_DATE_FORMAT = "%Y-%m-%d"
    DEFAULT_TIME_FORMAT = "%H-%M-%S"

    def __init__(self, config: Optional[PageExportConfig] = None):
        """
        Raises:
            ValueError: If base_directory is not an absolute path
        """
        self.config = config or PageExportConfig()
        self._base_dir = None
        if self.config.base_directory:
            base_path = Path(self.config.base_directory)
            if not base_path.is_absolute():
                raise ValueError(f"base_directory must be an absolute path: {self.config.base_directory}")
            self._base_dir = base_path.resolve()

    def resolve_filename(self, now: Optional[datetime] = None) -> Path:
        """
        Resolve the output filename with tag substitution and path validation.

        Args:
            now: Time used for the tags (default: current time)

        Raises:
            ValueError: If the path contains '..' or leaves base_directory
        """
        now = now or datetime.now()
        filename = self.config.output_path
        filename = self._replace_timestamp(filename, now)
        filename = self._replace_date(filename, now)
        filename = self._replace_time(filename, now)

        path = self._validate_output_path(filename)
        if not path.suffix:
            path = path.with_name(path.name + self.config.extension)
        return path

    def _validate_output_path(self, path_str: str) -> Path:
        path = Path(path_str)
        if ".." in path.parts:
            raise ValueError(f"Path traversal detected: output_path contains '..': {path_str}")

        if path.is_absolute():
            resolved_path = path.resolve()
        elif self._base_dir:
            resolved_path = (self._base_dir / path).resolve()
        else:
            resolved_path = path.resolve()

        if self._base_dir:
            try:
                resolved_path.relative_to(self._base_dir)
            except ValueError:
                raise ValueError(
                    f"output_path '{path_str}' resolves to '{resolved_path}' "
                    f"which is outside the allowed base directory '{self._base_dir}'"
                )
        return resolved_path

    def export(self, page: Any, now: Optional[datetime] = None) -> Path:
        """
        Write a rendered page to disk.

        Args:
            page: Rendered page as RasterBuffer or PIL Image
            now: Time used for filename tags

        Returns:
            Path where the page was saved

        Raises:
            ValueError: If the file exists and overwrite is False
            OSError: If the file cannot be written
        """
        image = page.to_image() if isinstance(page, RasterBuffer) else page
        if not hasattr(image, "save"):
            raise TypeError(f"Expected PIL Image or RasterBuffer, got {type(page)}")

        output_file = self.resolve_filename(now)
        if self.config.create_directories:
            output_file.parent.mkdir(parents=True, exist_ok=True)

        if output_file.exists() and not self.config.overwrite:
            raise ValueError(
                f"Output file already exists: {output_file}. "
                f"Set overwrite=True to replace."
            )

        try:
            if self.config.export_format == "PDF":
                sheet = self.layout_pdf_sheet(image)
                sheet.save(output_file, format="PDF", resolution=float(self.config.pdf_dpi))
            else:
                image.save(output_file, format="PNG")
        except (OSError, ValueError) as e:
            raise OSError(f"Failed to export page to {output_file}: {e}") from e

        logger.info(f"Exported {self.config.export_format} page to {output_file}")
        return output_file

    def layout_pdf_sheet(self, image: Any) -> Any:
        """
        Center a page on a white A4 sheet, scaled to fit inside the margin.

        Returns:
            RGB PIL Image of the A4 sheet
        """
        sheet_w, sheet_h = PDF_A4_SIZE
        margin = self.config.pdf_margin
        box_w, box_h = sheet_w - 2 * margin, sheet_h - 2 * margin

        scale = min(box_w / image.width, box_h / image.height)
        fitted_size = (max(1, round(image.width * scale)), max(1, round(image.height * scale)))
        fitted = image.convert("RGBA").resize(fitted_size, Image.Resampling.LANCZOS)

        sheet = Image.new("RGBA", PDF_A4_SIZE, PAPER_COLOR_RGBA)
        left = (sheet_w - fitted_size[0]) // 2
        top = (sheet_h - fitted_size[1]) // 2
        sheet.alpha_composite(fitted, (left, top))
        return sheet.convert("RGB")

    def _replace_timestamp(self, text: str, now: datetime) -> str:
        millis = str(int(now.timestamp() * 1000))
        return re.sub(self.TIMESTAMP_PATTERN, millis, text, flags=re.IGNORECASE)

    def _replace_date(self, text: str, now: datetime) -> str:
        def replacer(match):
            fmt = match.group(1) or self.DEFAULT_DATE_FORMAT
            try:
                return now.strftime(fmt)
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid date format string '{fmt}' in {{DATE}} tag: {e}")

        return re.sub(self.DATE_PATTERN, replacer, text, flags=re.IGNORECASE)

    def _replace_time(self, text: str, now: datetime) -> str:
        def replacer(match):
            fmt = match.group(1) or self.DEFAULT_TIME_FORMAT
            try:
                return now.strftime(fmt)
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid time format string '{fmt}' in {{TIME}} tag: {e}")

        return re.sub(self.TIME_PATTERN, replacer, text, flags=re.IGNORECASE)


def export_page(
    color_layer: RasterBuffer,
    outline_layer: RasterBuffer,
    strokes: Sequence[Stroke] = (),
    config: Optional[PageExportConfig] = None,
) -> Path:
    """Render a page with the display compositor and export it."""
    return PageExporter(config).export(composite(color_layer, outline_layer, strokes))
