# donations/utils/geocoding.py
"""
Address geocoding through the OpenStreetMap Nominatim search API.
Failures never raise: callers get None and show "coordinates unavailable".
"""

import logging
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)


class Geocoder:
    """Resolves a free-text address to coordinates"""

    BASE_URL = "https://nominatim.openstreetmap.org/search"

    def __init__(self, base_url: Optional[str] = None, user_agent: str = 'giving-network',
                 timeout: float = 5, session: Optional[requests.Session] = None):
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.session = session or requests.Session()
        # Nominatim rejects requests without an identifying User-Agent
        self.session.headers.update({'User-Agent': user_agent})

    def geocode(self, address: str) -> Optional[Dict]:
        """
        Look up an address.

        Returns:
            {'lat': float, 'lng': float, 'address': str}, or None if the
            address is empty, unknown, or the lookup fails.
        """
        if not address or not address.strip():
            return None

        try:
            response = self.session.get(
                self.base_url,
                params={'format': 'json', 'q': address, 'limit': 1},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.warning(f"Geocoding request failed for '{address}': {e}")
            return None
        except ValueError as e:
            logger.warning(f"Geocoder returned invalid JSON for '{address}': {e}")
            return None

        if not data:
            logger.info(f"No geocoding match for '{address}'")
            return None

        first = data[0]
        try:
            return {
                'lat': float(first['lat']),
                'lng': float(first['lon']),
                'address': first.get('display_name', address),
            }
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Unexpected geocoder payload for '{address}': {e}")
            return None
