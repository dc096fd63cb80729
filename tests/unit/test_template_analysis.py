from types import SimpleNamespace

import pytest

from cardmock.services import template_analysis as ta


@pytest.fixture
def cr80():
    return SimpleNamespace(**ta.TEMPLATE_TYPE_SEED[0])


def test_seed_dimensions():
    by_id = {t['id']: t for t in ta.TEMPLATE_TYPE_SEED}
    assert (by_id['prepaid-cr80']['width'], by_id['prepaid-cr80']['height']) == (1013, 638)
    assert by_id['wallet-apple']['category'] == 'digital'
    assert by_id['wallet-google']['aspect_ratio'] == pytest.approx(3.0714)


def test_exact_match(cr80):
    result = ta.analyze_upload(1013, 638, cr80)
    assert result.status == ta.STATUS_EXACT
    assert result.scale_factor == 1.0
    assert result.quality_rating == 'excellent'
    assert ta.upload_prompt(result, cr80.name)['variant'] == 'success'


def test_larger_image_with_matching_ratio_scales_down(cr80):
    result = ta.analyze_upload(2026, 1276, cr80)
    assert result.status == ta.STATUS_CORRECT_RATIO
    assert result.scale_factor == pytest.approx(0.5)
    assert result.crop is None
    assert result.message == "Image will be scaled to 1013×638px."


def test_small_image_flags_upscaling(cr80):
    result = ta.analyze_upload(800, 504, cr80)
    assert result.status == ta.STATUS_TOO_SMALL
    assert result.quality_rating == 'fair'
    assert "27% upscaling" in result.message
    prompt = ta.upload_prompt(result, cr80.name)
    assert prompt['title'] == 'Small Image Warning'
    assert prompt['show_crop_adjust'] is False


def test_near_ratio_is_cropped_from_sides(cr80):
    result = ta.analyze_upload(2000, 1200, cr80)
    assert result.status == ta.STATUS_WRONG_RATIO
    assert result.crop.width == 1905
    assert result.crop.height == 1200
    assert result.crop.y == 0
    assert result.message.startswith("Image will be cropped (95px from sides)")
    assert ta.upload_prompt(result, cr80.name)['show_crop_adjust'] is True


def test_far_ratio_not_compatible(cr80):
    result = ta.analyze_upload(1000, 1000, cr80)
    assert result.status == ta.STATUS_NOT_COMPATIBLE
    assert result.quality_rating == 'poor'
    assert ta.upload_prompt(result, cr80.name)['variant'] == 'error'


def test_rejects_non_positive_dimensions(cr80):
    with pytest.raises(ValueError):
        ta.analyze_upload(0, 638, cr80)


@pytest.mark.parametrize(
    "scale, rating",
    [(0.4, 'excellent'), (1.0, 'excellent'), (1.05, 'good'), (1.2, 'fair'), (1.31, 'poor')],
)
def test_quality_rating_bands(scale, rating):
    assert ta.quality_rating(scale) == rating


def test_centered_crop_for_tall_image():
    crop = ta.centered_crop(1000, 700, 1.5878)
    assert (crop.x, crop.width) == (0, 1000)
    assert crop.height == 630
    assert crop.y == 35


def test_to_dict_includes_crop(cr80):
    data = ta.analyze_upload(2000, 1200, cr80).to_dict()
    assert data['crop']['width'] == 1905
    assert data['target_width'] == 1013
