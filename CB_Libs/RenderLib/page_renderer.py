"""
Final page rendering.

One rendering function serves both on-screen display and file export, so
what the user sees is pixel-identical to what gets saved.

Layer order (bottom to top):
    1. white paper
    2. color layer, alpha composited
    3. freehand strokes (round caps and joins)
    4. outline layer, multiplied so black lines stay on top and white
       paper in the outline lets everything below show through

Functions:
    composite: Render a page to a RasterBuffer
    composite_png: Render a page to PNG bytes
    render_strokes_into: Rasterize strokes permanently into a color layer
    draw_stroke: Draw one stroke with Pillow's ImageDraw
"""

import logging
from typing import Any, Sequence

from PIL import Image, ImageChops, ImageDraw

from CB_Libs.FillLib.strokes import Stroke
from CB_Libs.LineArtLib.edge_detection import flatten_on_paper
from CB_Libs.RasterLib.raster_buffer import RasterBuffer
from CB_Libs.constants import PAPER_COLOR_RGBA

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def draw_stroke(draw: Any, stroke: Stroke) -> None:
    """
    Draw a stroke as connected segments with round caps and joins.

    A single-point stroke becomes a dot of the stroke's width.
    """
    width = max(1, int(round(stroke.width)))
    radius = stroke.width / 2

    if len(stroke.points) > 1:
        draw.line(list(stroke.points), fill=stroke.color, width=width, joint="curve")

    # Discs on every vertex give round caps and fill the outer side of joins
    for px, py in stroke.points:
        draw.ellipse(
            [px - radius, py - radius, px + radius, py + radius],
            fill=stroke.color,
        )


def _stroke_overlay(size, strokes: Sequence[Stroke]) -> Any:
    overlay = Image.new("RGBA", size, TRANSPARENT)
    draw = ImageDraw.Draw(overlay)
    for stroke in strokes:
        draw_stroke(draw, stroke)
    return overlay


def composite(
    color_layer: RasterBuffer,
    outline_layer: RasterBuffer,
    strokes: Sequence[Stroke] = (),
) -> RasterBuffer:
    """
    Render the final page.

    Args:
        color_layer: Current fill state
        outline_layer: Line art
        strokes: Freehand strokes not yet baked into the color layer

    Returns:
        Opaque RGBA RasterBuffer the size of the outline layer

    Raises:
        ValueError: If the two layers differ in size
    """
    if color_layer.size != outline_layer.size:
        raise ValueError(
            f"Layer size mismatch: color {color_layer.size} vs outline {outline_layer.size}"
        )

    size = outline_layer.size
    page = Image.new("RGBA", size, PAPER_COLOR_RGBA)
    page = Image.alpha_composite(page, color_layer.to_image())
    if strokes:
        page = Image.alpha_composite(page, _stroke_overlay(size, strokes))

    lines = flatten_on_paper(outline_layer.to_image()).convert("RGB")
    result = ImageChops.multiply(page.convert("RGB"), lines)
    return RasterBuffer.from_image(result)


def composite_png(
    color_layer: RasterBuffer,
    outline_layer: RasterBuffer,
    strokes: Sequence[Stroke] = (),
) -> bytes:
    """Render the final page as PNG bytes."""
    return composite(color_layer, outline_layer, strokes).to_png()


def render_strokes_into(color_layer: RasterBuffer, strokes: Sequence[Stroke]) -> None:
    """Rasterize strokes into the color layer in place."""
    if not strokes:
        return
    merged = Image.alpha_composite(color_layer.to_image(), _stroke_overlay(color_layer.size, strokes))
    color_layer.pixels[:, :] = RasterBuffer.from_image(merged).pixels
    logger.debug(f"Baked {len(strokes)} strokes into color layer")
