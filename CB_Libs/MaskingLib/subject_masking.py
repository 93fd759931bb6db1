"""
Subject masking and two-pass line art compositing.

A photo is split into a foreground subject and a background so the two can
be turned into line art separately (for example by an external generator
with different prompts) and recombined with a hard cutover along the mask.

Mask generation:
    1. grayscale and downscale to working_size x working_size
    2. Sobel gradient magnitude, clipped to 0-255
    3. radial center bias, strongest at the image center
    4. threshold into a binary mask
    5. one morphological closing pass
    6. keep the largest 8-connected region
    7. scale back to the photo size (nearest neighbour)

Classes:
    MaskingConfig: Tuning parameters
    SaliencyMask: Binary subject mask (True = subject)
    SubjectCutout: Mask, bounding box and cropped subject of one photo

Functions:
    generate_subject_mask: Detect the dominant subject of a photo
    create_center_circle_mask: Fallback mask for tiny images
    subject_bounding_box: Padded bounds of the subject pixels
    crop_to_subject: Cut the bounding box out of a photo
    composite_line_art: Hard-cutover merge of subject and background art
    composite_line_art_png: Byte-level merge that falls back to the background
    mask_and_composite: Full photo + two line arts -> merged line art
    prepare_subject_pass: Everything the subject generation pass needs
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
from PIL import Image

from CB_Libs.LineArtLib import edge_detection
from CB_Libs.RasterLib.raster_buffer import RasterBuffer, decode_image, encode_png
from CB_Libs.RasterLib.raster_models import BoundingBox
from CB_Libs.constants import (
    FALLBACK_BBOX_RATIO,
    FALLBACK_CIRCLE_RADIUS_RATIO,
    MASK_CENTER_BIAS,
    MASK_GRADIENT_THRESHOLD,
    MASK_MEMBERSHIP_THRESHOLD,
    MASK_WORKING_SIZE,
    SUBJECT_BBOX_MARGIN,
)

logger = logging.getLogger(__name__)

MIN_MASKABLE_SIZE = 3


@dataclass
class MaskingConfig:
    """Configuration for subject detection and compositing.

    Attributes:
        working_size: Side of the square working copy used for detection
        center_bias: Attenuation at the farthest corner (0 = no bias)
        gradient_threshold: Biased gradient above this is foreground
        membership_threshold: Mask intensity (0-1) above this counts as subject
        bbox_margin: Padding around the subject bounding box in pixels
        keep_largest_component: Keep only the largest connected region
        fallback_radius_ratio: Circle radius of the fallback mask, relative
            to the shorter image side
    """
    working_size: int = MASK_WORKING_SIZE
    center_bias: float = MASK_CENTER_BIAS
    gradient_threshold: float = MASK_GRADIENT_THRESHOLD
    membership_threshold: float = MASK_MEMBERSHIP_THRESHOLD
    bbox_margin: int = SUBJECT_BBOX_MARGIN
    keep_largest_component: bool = True
    fallback_radius_ratio: float = FALLBACK_CIRCLE_RADIUS_RATIO

    def __post_init__(self):
        if self.working_size < MIN_MASKABLE_SIZE:
            raise ValueError(f"working_size must be >= {MIN_MASKABLE_SIZE}, got {self.working_size}")
        if not 0 <= self.center_bias <= 1:
            raise ValueError(f"center_bias must be 0-1, got {self.center_bias}")
        if not 0 <= self.membership_threshold < 1:
            raise ValueError(f"membership_threshold must be in [0, 1), got {self.membership_threshold}")
        if self.bbox_margin < 0:
            raise ValueError(f"bbox_margin must be >= 0, got {self.bbox_margin}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {name: getattr(self, name) for name in self.__dataclass_fields__}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MaskingConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)


@dataclass
class SaliencyMask:
    """Binary subject mask.

    Attributes:
        mask: bool array of shape (height, width), True where the subject is
    """
    mask: np.ndarray

    def __post_init__(self):
        if self.mask.ndim != 2:
            raise ValueError(f"Expected 2D mask, got shape {self.mask.shape}")
        self.mask = self.mask.astype(bool)

    @property
    def width(self) -> int:
        return int(self.mask.shape[1])

    @property
    def height(self) -> int:
        return int(self.mask.shape[0])

    @property
    def size(self):
        return self.width, self.height

    def subject_pixel_count(self) -> int:
        return int(np.count_nonzero(self.mask))

    def is_empty(self) -> bool:
        return not self.mask.any()

    def to_image(self) -> Any:
        """White subject on black, as a PIL 'L' image."""
        return Image.fromarray(self.mask.astype(np.uint8) * 255)

    def to_png(self) -> bytes:
        return encode_png(self.to_image())

    @classmethod
    def from_image(cls, image: Any, membership_threshold: float = MASK_MEMBERSHIP_THRESHOLD) -> "SaliencyMask":
        """Read a mask image; luminance / 255 above the threshold is subject."""
        luminance = edge_detection.grayscale(image)
        return cls(luminance / 255.0 > membership_threshold)

    @classmethod
    def from_png(cls, data: bytes, membership_threshold: float = MASK_MEMBERSHIP_THRESHOLD) -> "SaliencyMask":
        """
        Decode a mask image.

        Raises:
            DecodeFailure: If the bytes are not a readable image
        """
        return cls.from_image(decode_image(data), membership_threshold)


@dataclass
class SubjectCutout:
    """Inputs for the subject line art pass.

    Attributes:
        mask: Subject mask at photo resolution
        bbox: Padded subject bounds
        subject_png: Photo cropped to bbox, PNG encoded
    """
    mask: SaliencyMask
    bbox: BoundingBox
    subject_png: bytes


def _as_image(source: Any) -> Any:
    if isinstance(source, RasterBuffer):
        return source.to_image()
    if not hasattr(source, "convert"):
        raise TypeError(f"Expected PIL Image or RasterBuffer, got {type(source)}")
    return source


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def create_center_circle_mask(
    width: int,
    height: int,
    radius_ratio: float = FALLBACK_CIRCLE_RADIUS_RATIO,
) -> SaliencyMask:
    """
    Disc centered on the image, radius = radius_ratio * shorter side.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Mask size must be positive, got {width}x{height}")
    ys, xs = np.mgrid[0:height, 0:width]
    radius = min(width, height) * radius_ratio
    dist = np.hypot(xs - width / 2, ys - height / 2)
    return SaliencyMask(dist <= radius)


def _center_bias(height: int, width: int, strength: float) -> np.ndarray:
    ys, xs = np.mgrid[0:height, 0:width]
    cx, cy = width / 2, height / 2
    max_dist = np.hypot(cx, cy)
    dist = np.hypot(xs - cx, ys - cy)
    return (1.0 - strength * dist / max_dist).astype(np.float32)


def generate_subject_mask(photo: Any, config: Optional[MaskingConfig] = None) -> SaliencyMask:
    """
    Detect the dominant foreground subject of a photo.

    Args:
        photo: PIL Image or RasterBuffer
        config: Masking parameters

    Returns:
        SaliencyMask with the photo's dimensions. Photos too small for a
        3x3 kernel get the centered circle fallback.
    """
    config = config or MaskingConfig()
    image = _as_image(photo)
    width, height = image.size

    if width < MIN_MASKABLE_SIZE or height < MIN_MASKABLE_SIZE:
        logger.warning(f"Photo {width}x{height} too small for subject detection, using circle mask")
        return create_center_circle_mask(width, height, config.fallback_radius_ratio)

    side = config.working_size
    working = image.convert("RGBA").resize((side, side), Image.Resampling.BILINEAR)
    gray = edge_detection.grayscale(working)

    magnitude = np.minimum(edge_detection.gradient_magnitude(gray), 255.0)
    biased = np.clip(np.rint(magnitude * _center_bias(side, side, config.center_bias)), 0, 255)
    foreground = biased > config.gradient_threshold
    foreground = edge_detection.close_mask(foreground)

    if config.keep_largest_component:
        foreground = edge_detection.largest_component(foreground)

    small = Image.fromarray(foreground.astype(np.uint8) * 255)
    full = np.asarray(small.resize((width, height), Image.Resampling.NEAREST))
    mask = SaliencyMask(full > 127)
    logger.debug(f"Subject mask for {width}x{height} photo covers {mask.subject_pixel_count()} pixels")
    return mask


def subject_bounding_box(mask: SaliencyMask, margin: int = SUBJECT_BBOX_MARGIN) -> BoundingBox:
    """
    Padded bounding box of the subject pixels, clamped to the image.

    An empty mask yields a centered box covering half of each dimension.
    """
    width, height = mask.size
    ys, xs = np.nonzero(mask.mask)

    if xs.size == 0:
        return BoundingBox(
            x=_round_half_up(width * (1 - FALLBACK_BBOX_RATIO) / 2),
            y=_round_half_up(height * (1 - FALLBACK_BBOX_RATIO) / 2),
            width=max(1, _round_half_up(width * FALLBACK_BBOX_RATIO)),
            height=max(1, _round_half_up(height * FALLBACK_BBOX_RATIO)),
        )

    x0 = max(0, int(xs.min()) - margin)
    y0 = max(0, int(ys.min()) - margin)
    x1 = min(width - 1, int(xs.max()) + margin)
    y1 = min(height - 1, int(ys.max()) + margin)
    return BoundingBox(x=x0, y=y0, width=x1 - x0 + 1, height=y1 - y0 + 1)


def crop_to_subject(photo: Any, bbox: BoundingBox) -> RasterBuffer:
    """
    Cut bbox out of a photo.

    Raises:
        ValueError: If bbox does not overlap the photo
    """
    buffer = photo if isinstance(photo, RasterBuffer) else RasterBuffer.from_image(photo)
    x0, y0 = max(0, bbox.x), max(0, bbox.y)
    x1, y1 = min(buffer.width, bbox.right), min(buffer.height, bbox.bottom)
    if x0 >= x1 or y0 >= y1:
        raise ValueError(f"Bounding box {bbox.to_dict()} lies outside {buffer.width}x{buffer.height} image")
    return RasterBuffer(buffer.pixels[y0:y1, x0:x1].copy())


def composite_line_art(
    background: RasterBuffer,
    subject: RasterBuffer,
    mask: SaliencyMask,
    bbox: BoundingBox,
) -> RasterBuffer:
    """
    Overlay subject line art onto background line art along the mask.

    The subject image is scaled to the bounding box and its pixels replace
    background pixels wherever the mask marks subject inside the box.
    Nothing is blended, so lines stay pure black and white.

    Raises:
        ValueError: If mask and background differ in size
    """
    if mask.size != background.size:
        raise ValueError(f"Mask size {mask.size} does not match background {background.size}")

    result = background.copy()
    x0, y0 = max(0, bbox.x), max(0, bbox.y)
    x1, y1 = min(result.width, bbox.right), min(result.height, bbox.bottom)
    if x0 >= x1 or y0 >= y1:
        return result

    scaled = subject.to_image().resize((bbox.width, bbox.height), Image.Resampling.NEAREST)
    subject_pixels = np.asarray(scaled)[y0 - bbox.y:y1 - bbox.y, x0 - bbox.x:x1 - bbox.x]

    region = result.pixels[y0:y1, x0:x1]
    inside = mask.mask[y0:y1, x0:x1]
    region[inside] = subject_pixels[inside]
    return result


def composite_line_art_png(
    background_bytes: bytes,
    subject_bytes: bytes,
    mask_bytes: bytes,
    bbox: BoundingBox,
    config: Optional[MaskingConfig] = None,
) -> bytes:
    """
    Byte-level composite_line_art.

    Returns the background bytes unchanged when any input cannot be decoded
    or the inputs do not fit together.
    """
    config = config or MaskingConfig()
    try:
        background = RasterBuffer.from_png(background_bytes)
        subject = RasterBuffer.from_png(subject_bytes)
        mask = SaliencyMask.from_png(mask_bytes, config.membership_threshold)
        return composite_line_art(background, subject, mask, bbox).to_png()
    except ValueError as e:
        logger.warning(f"Compositing failed, keeping background line art: {e}")
        return background_bytes


def mask_and_composite(
    photo_bytes: bytes,
    background_bytes: bytes,
    subject_bytes: bytes,
    config: Optional[MaskingConfig] = None,
) -> bytes:
    """
    Merge separately generated subject and background line art of a photo.

    The subject is detected on the photo scaled to the background's size,
    so the mask lines up with the background pixels.

    Args:
        photo_bytes: Encoded source photo
        background_bytes: Encoded background line art
        subject_bytes: Encoded line art of the cropped subject
        config: Masking parameters

    Returns:
        PNG bytes of the merged line art, or background_bytes unchanged if
        anything fails to decode
    """
    config = config or MaskingConfig()
    try:
        background = RasterBuffer.from_png(background_bytes)
        subject = RasterBuffer.from_png(subject_bytes)
        photo = decode_image(photo_bytes)
        if photo.size != background.size:
            photo = photo.convert("RGBA").resize(background.size, Image.Resampling.LANCZOS)

        mask = generate_subject_mask(photo, config)
        bbox = subject_bounding_box(mask, config.bbox_margin)
        result = composite_line_art(background, subject, mask, bbox)
    except ValueError as e:
        logger.warning(f"Mask and composite failed, keeping background line art: {e}")
        return background_bytes

    logger.info(
        f"Composited subject ({bbox.width}x{bbox.height} at {bbox.x},{bbox.y}) "
        f"into {background.width}x{background.height} line art"
    )
    return result.to_png()


def prepare_subject_pass(photo_bytes: bytes, config: Optional[MaskingConfig] = None) -> SubjectCutout:
    """
    Detect the subject of a photo and crop it out.

    Raises:
        DecodeFailure: If the photo cannot be decoded
    """
    config = config or MaskingConfig()
    photo = decode_image(photo_bytes)
    mask = generate_subject_mask(photo, config)
    bbox = subject_bounding_box(mask, config.bbox_margin)
    subject = crop_to_subject(photo, bbox)
    return SubjectCutout(mask=mask, bbox=bbox, subject_png=subject.to_png())
