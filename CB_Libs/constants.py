"""
Constants and configuration values for the coloring book core.

This module centralizes all constant values, magic numbers, and
tuning parameters used throughout the raster pipeline.
"""

# Luminance weights (ITU-R BT.601)
LUMINANCE_WEIGHTS = (0.299, 0.587, 0.114)

# Color layer defaults
EMPTY_COLOR_LAYER_RGBA = (255, 255, 255, 0)
PAPER_COLOR_RGBA = (255, 255, 255, 255)
LINE_COLOR_RGBA = (0, 0, 0, 255)

# Flood fill wall predicate: luminance <= threshold is a wall
WALL_LUMINANCE_THRESHOLD = 50
WALL_THRESHOLD_INCLUSIVE = True

# Undo/redo history
MAX_UNDO_DEPTH = 5

# Line art preprocessing
LINE_ART_WORKING_SIZE = 2048
LINE_ART_BLUR_RADIUS = 1.0
DEFAULT_OUTLINE_STRENGTH = 50
MIN_OUTLINE_STRENGTH = 0
MAX_OUTLINE_STRENGTH = 100
MIN_EDGE_THRESHOLD = 50.0
MAX_EDGE_THRESHOLD = 200.0
POLARITY_SAMPLE_GRID = 10
POLARITY_DARK_RATIO = 2.0
MIN_DARK_NEIGHBORS = 2
DILATION_PASSES = 1

# Sobel kernels (x: horizontal derivative, y: vertical derivative)
SOBEL_X = (
    (-1, 0, 1),
    (-2, 0, 2),
    (-1, 0, 1),
)
SOBEL_Y = (
    (-1, -2, -1),
    (0, 0, 0),
    (1, 2, 1),
)

# Subject masking
MASK_WORKING_SIZE = 512
MASK_CENTER_BIAS = 0.7
MASK_GRADIENT_THRESHOLD = 80
MASK_MEMBERSHIP_THRESHOLD = 0.5
SUBJECT_BBOX_MARGIN = 20
FALLBACK_CIRCLE_RADIUS_RATIO = 0.35
FALLBACK_BBOX_RATIO = 0.5

# Strokes
MIN_STROKE_WIDTH = 1.0
MAX_STROKE_WIDTH = 100.0
DEFAULT_STROKE_WIDTH = 8.0

# Page storage
PAGES_DIR_NAME = "Pages"
PAGE_METADATA_FILE = "page.json"
OUTLINE_FILE_NAME = "outline.png"
WORKING_FILE_NAME = "working.png"
THUMBNAIL_FILE_NAME = "thumbnail.png"
SOURCE_FILE_NAME = "source.png"
THUMBNAIL_MAX_SIZE = 256
SCHEMA_VERSION = 1

# Page metadata field names
FIELD_SCHEMA_VERSION = "schema_version"
FIELD_PAGE_ID = "id"
FIELD_CREATED_AT = "created_at"
FIELD_SOURCE_PATH = "source_image_path"
FIELD_OUTLINE_PATH = "outline_image_path"
FIELD_WORKING_PATH = "working_image_path"
FIELD_THUMBNAIL_PATH = "thumbnail_path"
FIELD_WIDTH = "width"
FIELD_HEIGHT = "height"

# Export
DEFAULT_EXPORT_PATH = "coloring_page_{TIMESTAMP}"
DEFAULT_EXPORT_FORMAT = "PNG"
SUPPORTED_EXPORT_FORMATS = {"PNG", "PDF"}
PDF_DPI = 150
PDF_A4_SIZE = (1240, 1754)
PDF_MARGIN = 20

# Image encoding
PNG_FORMAT = "PNG"
