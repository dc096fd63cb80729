from unittest.mock import Mock, patch

import pytest

from cardmock.services.figma_client import FigmaClient, FigmaError, extract_frames, file_url


FILE_STRUCTURE = {
    "name": "Card designs",
    "lastModified": "2026-01-01T00:00:00Z",
    "version": "42",
    "document": {
        "id": "0:0",
        "type": "DOCUMENT",
        "children": [
            {
                "id": "0:1",
                "type": "CANVAS",
                "children": [
                    {
                        "id": "1:2",
                        "name": "Front",
                        "type": "FRAME",
                        "absoluteBoundingBox": {"x": 0, "y": 0, "width": 1013, "height": 638},
                        "children": [{"id": "1:3", "type": "TEXT", "name": "Label"}],
                    },
                    {"id": "1:4", "name": "Badge", "type": "COMPONENT"},
                ],
            }
        ],
    },
}


def _response(status_code=200, payload=None):
    resp = Mock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = payload or {}
    resp.text = ""
    return resp


def test_extract_frames_keeps_document_order():
    frames = extract_frames(FILE_STRUCTURE)
    assert [f["node_id"] for f in frames] == ["1:2", "1:4"]
    assert frames[0]["bounds"]["width"] == 1013
    assert frames[1]["bounds"] is None


def test_file_url():
    assert file_url("abc") == "https://www.figma.com/file/abc"


def test_list_frames_uses_token_header():
    with patch("cardmock.services.figma_client.requests.get", return_value=_response(200, FILE_STRUCTURE)) as get:
        result = FigmaClient("tok").list_frames("abc")
    assert get.call_args.kwargs["headers"] == {"X-Figma-Token": "tok"}
    assert result["name"] == "Card designs"
    assert result["version"] == "42"
    assert len(result["frames"]) == 2


def test_export_frame_returns_image_url():
    payload = {"images": {"1:2": "https://figma-cdn/1-2.png"}}
    with patch("cardmock.services.figma_client.requests.get", return_value=_response(200, payload)) as get:
        url = FigmaClient("tok").export_frame("abc", "1:2")
    assert url == "https://figma-cdn/1-2.png"
    assert get.call_args.kwargs["params"]["format"] == "png"


def test_export_frame_error_payload():
    with patch("cardmock.services.figma_client.requests.get", return_value=_response(200, {"err": "bad node"})):
        with pytest.raises(FigmaError) as exc:
            FigmaClient("tok").export_frame("abc", "9:9")
    assert "bad node" in exc.value.detail


@pytest.mark.parametrize("upstream, expected", [(403, 400), (404, 404), (500, 502)])
def test_http_errors(upstream, expected):
    with patch("cardmock.services.figma_client.requests.get", return_value=_response(upstream)):
        with pytest.raises(FigmaError) as exc:
            FigmaClient("tok").get_file("abc")
    assert exc.value.status_code == expected
