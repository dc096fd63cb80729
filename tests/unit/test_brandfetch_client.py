from unittest.mock import Mock, patch

import pytest
import requests

from cardmock.services.brandfetch_client import BrandfetchClient, BrandfetchError, normalize_domain


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://www.Apple.com/", "apple.com"),
        ("http://nike.com/shoes", "nike.com"),
        ("Acme Corp", "acmecorp.com"),
        ("  stripe.com ", "stripe.com"),
    ],
)
def test_normalize_domain(raw, expected):
    assert normalize_domain(raw) == expected


def _response(status_code=200, payload=None):
    resp = Mock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = payload or {}
    return resp


def test_fetch_brand_maps_payload():
    payload = {
        "name": "Apple",
        "domain": "apple.com",
        "description": "Think different",
        "logos": [
            {
                "type": "logo",
                "theme": "dark",
                "formats": [{"src": "https://cdn/apple.svg", "format": "svg", "width": 100, "height": 50}],
            }
        ],
        "colors": [{"hex": "#000000", "type": "dark", "brightness": 0}],
        "fonts": [{"name": "SF Pro", "type": "title", "origin": "custom"}],
    }
    with patch("cardmock.services.brandfetch_client.requests.get", return_value=_response(200, payload)) as get:
        result = BrandfetchClient(api_key="k").fetch_brand("www.apple.com")

    assert get.call_args.args[0].endswith("/apple.com")
    assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer k"
    assert result["name"] == "Apple"
    assert result["logos"][0]["formats"][0]["format"] == "svg"
    assert result["colors"] == [{"hex": "#000000", "type": "dark", "brightness": 0}]
    assert result["fonts"][0]["name"] == "SF Pro"


def test_fetch_brand_requires_query_and_key():
    with pytest.raises(BrandfetchError) as exc:
        BrandfetchClient(api_key="k").fetch_brand("  ")
    assert exc.value.status_code == 400

    with pytest.raises(BrandfetchError) as exc:
        BrandfetchClient(api_key="").fetch_brand("apple.com")
    assert exc.value.status_code == 500


@pytest.mark.parametrize(
    "upstream, expected_status, fragment",
    [
        (404, 404, "Brand not found"),
        (400, 400, "Invalid domain format"),
        (401, 500, "Invalid API key"),
        (503, 502, "Brandfetch API error: 503"),
    ],
)
def test_fetch_brand_error_mapping(upstream, expected_status, fragment):
    with patch("cardmock.services.brandfetch_client.requests.get", return_value=_response(upstream)):
        with pytest.raises(BrandfetchError) as exc:
            BrandfetchClient(api_key="k").fetch_brand("apple")
    assert exc.value.status_code == expected_status
    assert fragment in exc.value.detail


def test_fetch_brand_network_failure():
    with patch(
        "cardmock.services.brandfetch_client.requests.get",
        side_effect=requests.ConnectionError("boom"),
    ):
        with pytest.raises(BrandfetchError) as exc:
            BrandfetchClient(api_key="k").fetch_brand("apple.com")
    assert exc.value.status_code == 502
