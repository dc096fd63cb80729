"""
Brandfetch lookup client.

Fetches company name, logos, colors and fonts for a domain from the
Brandfetch v2 API.
"""
import os
import re
import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

BRANDFETCH_API_URL = 'https://api.brandfetch.io/v2/brands'


class BrandfetchError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def normalize_domain(raw: str) -> str:
    """Turn user input into the domain Brandfetch expects.

    ``"https://www.Apple.com/"`` -> ``"apple.com"``; ``"Acme Corp"`` -> ``"acmecorp.com"``.
    """
    value = (raw or '').strip().lower()
    value = re.sub(r'^https?://', '', value)
    value = re.sub(r'^www\.', '', value)
    value = value.split('/', 1)[0]
    if '.' not in value:
        value = re.sub(r'\s+', '', value) + '.com'
    return value


def _logo_entry(logo: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'type': logo.get('type'),
        'theme': logo.get('theme'),
        'formats': [
            {
                'src': fmt.get('src'),
                'format': fmt.get('format'),
                'background': fmt.get('background'),
                'width': fmt.get('width'),
                'height': fmt.get('height'),
                'size': fmt.get('size'),
            }
            for fmt in logo.get('formats') or []
        ],
    }


class BrandfetchClient:
    def __init__(self, api_key: Optional[str] = None, timeout: float = 10.0):
        self.api_key = api_key if api_key is not None else os.getenv('BRANDFETCH_API_KEY', '')
        self.timeout = timeout

    def fetch_brand(self, query: str) -> Dict[str, Any]:
        if not query or not query.strip():
            raise BrandfetchError(400, 'Domain parameter is required')
        if not self.api_key:
            raise BrandfetchError(500, 'Brandfetch API key is not configured')

        domain = normalize_domain(query)
        try:
            response = requests.get(
                f"{BRANDFETCH_API_URL}/{domain}",
                headers={'Authorization': f'Bearer {self.api_key}', 'Accept': 'application/json'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Brandfetch request failed for {domain}: {e}")
            raise BrandfetchError(502, 'Failed to fetch brand data') from e

        if response.status_code == 404:
            raise BrandfetchError(
                404,
                f'Brand not found for "{query.strip()}". Try using the exact company domain (e.g., apple.com, nike.com)',
            )
        if response.status_code == 400:
            raise BrandfetchError(
                400,
                'Invalid domain format. Please enter a valid domain like "apple.com" or company name like "apple"',
            )
        if response.status_code == 401:
            raise BrandfetchError(500, 'Invalid API key. Please check your Brandfetch API key configuration.')
        if not response.ok:
            logger.error(f"Brandfetch API error {response.status_code} for {domain}")
            raise BrandfetchError(502, f'Brandfetch API error: {response.status_code}')

        data = response.json()
        logger.info(f"Brandfetch data fetched for {domain}")
        return {
            'name': data.get('name') or query.strip(),
            'domain': data.get('domain') or domain,
            'description': data.get('description'),
            'logos': [_logo_entry(logo) for logo in data.get('logos') or []],
            'colors': [
                {'hex': c.get('hex'), 'type': c.get('type'), 'brightness': c.get('brightness')}
                for c in data.get('colors') or []
            ],
            'fonts': [
                {'name': f.get('name'), 'type': f.get('type'), 'origin': f.get('origin')}
                for f in data.get('fonts') or []
            ],
        }


def get_brandfetch_client() -> BrandfetchClient:
    return BrandfetchClient()
