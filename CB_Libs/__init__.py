"""
CB_Libs - Coloring Book Library Modules

This package contains the raster core of the coloring book application,
organized into specialized sub-packages:

- RasterLib: RGBA pixel buffers, PNG encode/decode, shared data models
- FillLib: Boundary-respecting flood fill, strokes and the undo/redo log
- LineArtLib: Photo-to-line-art preprocessing pipeline
- MaskingLib: Subject masking and two-pass line art composition
- RenderLib: Final page composition and canvas coordinate mapping
- SessionLib: Editing session surface and the background ingest worker
- PageStoreLib: Coloring page storage on disk
- ExportLib: PNG/PDF export with dynamic filenames
"""

__version__ = "0.1.0"
