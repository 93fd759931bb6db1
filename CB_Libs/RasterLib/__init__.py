"""
RasterLib - RGBA raster buffers and shared value types.
"""

from CB_Libs.RasterLib.raster_models import (
    BoundingBox,
    ImagePoint,
    RgbaColor,
    normalize_rgba,
)
from CB_Libs.RasterLib.raster_buffer import (
    RasterBuffer,
    decode_image,
    encode_png,
    luminance_of,
    pack_color,
)

__all__ = [
    "BoundingBox",
    "ImagePoint",
    "RgbaColor",
    "normalize_rgba",
    "RasterBuffer",
    "decode_image",
    "encode_png",
    "luminance_of",
    "pack_color",
]
