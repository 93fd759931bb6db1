"""
RenderLib - Page compositing and canvas coordinate mapping.
"""

from CB_Libs.RenderLib.page_renderer import (
    composite,
    composite_png,
    draw_stroke,
    render_strokes_into,
)
from CB_Libs.RenderLib.viewport import (
    Rect,
    ViewTransform,
    canvas_to_image,
    fit_destination_rect,
    image_to_canvas,
)

__all__ = [
    "composite",
    "composite_png",
    "draw_stroke",
    "render_strokes_into",
    "Rect",
    "ViewTransform",
    "canvas_to_image",
    "fit_destination_rect",
    "image_to_canvas",
]
