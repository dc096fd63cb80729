"""
Upload analysis for template images.

Given the pixel dimensions of an uploaded image and a template type, decide
whether it can be used as-is, scaled, cropped, or not at all, and describe
the outcome for the upload UI.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

RATIO_TOLERANCE = 0.005
MAX_RATIO_DEVIATION = 0.1

STATUS_EXACT = 'exact'
STATUS_CORRECT_RATIO = 'correct_ratio'
STATUS_TOO_SMALL = 'too_small'
STATUS_WRONG_RATIO = 'wrong_ratio'
STATUS_NOT_COMPATIBLE = 'not_compatible'

# Seed rows for the template_types table.
TEMPLATE_TYPE_SEED = [
    {
        'id': 'prepaid-cr80',
        'name': 'Prepaid Card (CR80)',
        'width': 1013,
        'height': 638,
        'aspect_ratio': 1.5878,
        'category': 'physical',
        'description': 'Standard CR80 card at 300 DPI (3.375in x 2.125in).',
        'guide_presets': {'logo_left': 90, 'logo_top': 107, 'midpoint': 384},
    },
    {
        'id': 'wallet-apple',
        'name': 'Apple Wallet',
        'width': 1032,
        'height': 336,
        'aspect_ratio': 3.0714,
        'category': 'digital',
        'description': 'Apple Wallet pass strip image.',
        'guide_presets': {'logo_zone_right': 200, 'safe_area': 50},
    },
    {
        'id': 'wallet-google',
        'name': 'Google Wallet',
        'width': 1032,
        'height': 336,
        'aspect_ratio': 3.0714,
        'category': 'digital',
        'description': 'Google Wallet pass hero image.',
        'guide_presets': {'logo_zone_right': 200, 'safe_area': 50},
    },
]


@dataclass
class CropRect:
    x: int
    y: int
    width: int
    height: int


@dataclass
class UploadAnalysis:
    status: str
    original_width: int
    original_height: int
    original_ratio: float
    target_width: int
    target_height: int
    target_ratio: float
    ratio_delta: float
    scale_factor: float
    quality_rating: str
    message: str
    crop: Optional[CropRect] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def quality_rating(scale_factor: float) -> str:
    if scale_factor <= 1.0:
        return 'excellent'
    if scale_factor <= 1.1:
        return 'good'
    if scale_factor <= 1.3:
        return 'fair'
    return 'poor'


def centered_crop(width: int, height: int, target_ratio: float) -> CropRect:
    """Largest centered rectangle of ``target_ratio`` inside width x height."""
    if width / height > target_ratio:
        crop_width = round(height * target_ratio)
        return CropRect(x=round((width - crop_width) / 2), y=0, width=crop_width, height=height)
    crop_height = round(width / target_ratio)
    return CropRect(x=0, y=round((height - crop_height) / 2), width=width, height=crop_height)


def _crop_summary(analysis: UploadAnalysis) -> tuple[int, str]:
    crop = analysis.crop
    if crop.y == 0:
        return analysis.original_width - crop.width, 'sides'
    return analysis.original_height - crop.height, 'top/bottom'


def analyze_upload(width: int, height: int, template_type) -> UploadAnalysis:
    """Classify an upload of ``width`` x ``height`` against ``template_type``.

    ``template_type`` needs ``name``, ``width``, ``height`` and ``aspect_ratio``
    (a TemplateType row or anything shaped like one).
    """
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")

    target_ratio = template_type.aspect_ratio
    original_ratio = width / height
    ratio_delta = abs(original_ratio - target_ratio) / target_ratio
    base = dict(
        original_width=width,
        original_height=height,
        original_ratio=original_ratio,
        target_width=template_type.width,
        target_height=template_type.height,
        target_ratio=target_ratio,
        ratio_delta=ratio_delta,
    )

    if width == template_type.width and height == template_type.height:
        return UploadAnalysis(
            status=STATUS_EXACT,
            scale_factor=1.0,
            quality_rating='excellent',
            message='Perfect! Image matches template specifications exactly.',
            **base,
        )

    ratio_matches = ratio_delta <= RATIO_TOLERANCE
    crop = None
    if ratio_matches:
        scale_factor = template_type.width / width
    elif ratio_delta <= MAX_RATIO_DEVIATION:
        crop = centered_crop(width, height, target_ratio)
        scale_factor = template_type.width / crop.width
    else:
        scale_factor = template_type.width / width

    if ratio_delta > MAX_RATIO_DEVIATION:
        return UploadAnalysis(
            status=STATUS_NOT_COMPATIBLE,
            scale_factor=scale_factor,
            quality_rating='poor',
            message=(
                f"This image's proportions don't match {template_type.name}. "
                f"Expected ~{target_ratio:.2f}:1 ratio, got {original_ratio:.2f}:1."
            ),
            **base,
        )

    rating = quality_rating(scale_factor)
    if scale_factor > 1.0:
        upscale_percent = round((scale_factor - 1) * 100)
        if crop:
            message = f"Image is smaller than recommended and needs cropping. {upscale_percent}% upscaling will be applied."
        else:
            message = f"Image is smaller than recommended. {upscale_percent}% upscaling may reduce quality."
        return UploadAnalysis(
            status=STATUS_TOO_SMALL, scale_factor=scale_factor, quality_rating=rating, message=message, crop=crop, **base
        )

    if crop:
        analysis = UploadAnalysis(
            status=STATUS_WRONG_RATIO, scale_factor=scale_factor, quality_rating=rating, message='', crop=crop, **base
        )
        amount, direction = _crop_summary(analysis)
        analysis.message = (
            f"Image will be cropped ({amount}px from {direction}) and scaled to fit {template_type.name} dimensions."
        )
        return analysis

    return UploadAnalysis(
        status=STATUS_CORRECT_RATIO,
        scale_factor=scale_factor,
        quality_rating=rating,
        message=f"Image will be scaled to {template_type.width}×{template_type.height}px.",
        **base,
    )


def upload_prompt(analysis: UploadAnalysis, template_name: str) -> Dict[str, Any]:
    """UI prompt (title, description, variant, preview flags) for an analysis."""
    w, h = analysis.original_width, analysis.original_height
    if analysis.status == STATUS_EXACT:
        return {
            'title': 'Perfect Match',
            'description': f"Your image matches the {template_name} specifications exactly.",
            'variant': 'success',
            'show_preview': False,
            'show_crop_adjust': False,
        }
    if analysis.status == STATUS_CORRECT_RATIO:
        return {
            'title': 'Ready to Scale',
            'description': (
                f"Your image is {w}×{h}px. It will be scaled to "
                f"{analysis.target_width}×{analysis.target_height}px for {template_name}."
            ),
            'variant': 'info',
            'show_preview': True,
            'show_crop_adjust': False,
        }
    if analysis.status == STATUS_TOO_SMALL:
        return {
            'title': 'Small Image Warning',
            'description': (
                f"Your image is {w}×{h}px, smaller than the {analysis.target_width}×{analysis.target_height}px "
                f"standard. Upscaling may reduce quality. Quality rating: {analysis.quality_rating}."
            ),
            'variant': 'warning',
            'show_preview': True,
            'show_crop_adjust': analysis.crop is not None,
        }
    if analysis.status == STATUS_WRONG_RATIO:
        amount, direction = _crop_summary(analysis)
        return {
            'title': 'Crop Required',
            'description': (
                f"Your image is {w}×{h}px ({analysis.original_ratio:.2f}:1). {template_name} requires "
                f"{analysis.target_ratio:.2f}:1. {amount}px will be cropped from the {direction}."
            ),
            'variant': 'warning',
            'show_preview': True,
            'show_crop_adjust': True,
        }
    return {
        'title': 'Not Compatible',
        'description': (
            f"This image doesn't appear to be compatible with {template_name}. Expected aspect ratio: "
            f"~{analysis.target_ratio:.2f}:1. Your image: {analysis.original_ratio:.2f}:1."
        ),
        'variant': 'error',
        'show_preview': False,
        'show_crop_adjust': False,
    }
