"""
MaskingLib - Subject detection and two-pass line art compositing.
"""

from CB_Libs.MaskingLib.subject_masking import (
    MaskingConfig,
    SaliencyMask,
    SubjectCutout,
    composite_line_art,
    composite_line_art_png,
    create_center_circle_mask,
    crop_to_subject,
    generate_subject_mask,
    mask_and_composite,
    prepare_subject_pass,
    subject_bounding_box,
)

__all__ = [
    "MaskingConfig",
    "SaliencyMask",
    "SubjectCutout",
    "composite_line_art",
    "composite_line_art_png",
    "create_center_circle_mask",
    "crop_to_subject",
    "generate_subject_mask",
    "mask_and_composite",
    "prepare_subject_pass",
    "subject_bounding_box",
]
