"""
Figma REST client for importing frames as mockups.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

FIGMA_API_BASE = 'https://api.figma.com/v1'
FRAME_NODE_TYPES = ('FRAME', 'COMPONENT', 'COMPONENT_SET', 'INSTANCE')


class FigmaError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def file_url(file_key: str) -> str:
    return f"https://www.figma.com/file/{file_key}"


def extract_frames(file_structure: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Depth-first list of frame-like nodes with their bounding boxes."""
    frames: List[Dict[str, Any]] = []
    stack = [file_structure.get('document')] if file_structure.get('document') else []
    while stack:
        node = stack.pop()
        if not isinstance(node, dict):
            continue
        if node.get('type') in FRAME_NODE_TYPES:
            box = node.get('absoluteBoundingBox')
            frames.append({
                'node_id': node.get('id'),
                'name': node.get('name') or 'Untitled Frame',
                'type': node.get('type'),
                'bounds': {
                    'x': box.get('x'),
                    'y': box.get('y'),
                    'width': box.get('width'),
                    'height': box.get('height'),
                } if box else None,
            })
        # reversed keeps document order when popping
        stack.extend(reversed(node.get('children') or []))
    return frames


class FigmaClient:
    def __init__(self, access_token: str, timeout: float = 30.0):
        self.access_token = access_token
        self.timeout = timeout

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = requests.get(
                f"{FIGMA_API_BASE}{path}",
                headers={'X-Figma-Token': self.access_token},
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Figma request {path} failed: {e}")
            raise FigmaError(502, 'Failed to reach Figma') from e
        if response.status_code in (401, 403):
            raise FigmaError(400, 'Figma access token is invalid or lacks access to this file')
        if response.status_code == 404:
            raise FigmaError(404, 'Figma file not found')
        if not response.ok:
            logger.error(f"Figma API error {response.status_code} for {path}: {response.text}")
            raise FigmaError(502, f'Figma API error: {response.status_code}')
        return response.json()

    def get_file(self, file_key: str) -> Dict[str, Any]:
        return self._get(f"/files/{file_key}")

    def list_frames(self, file_key: str) -> Dict[str, Any]:
        data = self.get_file(file_key)
        return {
            'file_key': file_key,
            'name': data.get('name'),
            'last_modified': data.get('lastModified'),
            'version': data.get('version'),
            'frames': extract_frames(data),
        }

    def export_frame(self, file_key: str, node_id: str) -> str:
        """PNG export URL for one node (2x scale); empty string when Figma returns none."""
        data = self._get(f"/images/{file_key}", params={'ids': node_id, 'format': 'png', 'scale': 2})
        if data.get('err'):
            raise FigmaError(502, f"Figma export failed: {data['err']}")
        return (data.get('images') or {}).get(node_id) or ''
