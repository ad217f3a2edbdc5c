"""
Station catalog. Only these streams are reachable through the HTTP endpoint,
so the service cannot be used as an open proxy.
"""

from typing import Dict, Optional

STREAMTHEWORLD_REDIRECT = 'https://playerservices.streamtheworld.com/api/livestream-redirect/'

STATION_URLS: Dict[str, str] = {
    'CLASS95': STREAMTHEWORLD_REDIRECT + 'CLASS95.mp3',
    'GOLD905': STREAMTHEWORLD_REDIRECT + 'GOLD905.mp3',
    'YES933': STREAMTHEWORLD_REDIRECT + 'YES933.mp3',
    '987FM': STREAMTHEWORLD_REDIRECT + '987FM.mp3',
    '883JIA': STREAMTHEWORLD_REDIRECT + '883JIA.mp3',
}


def normalize_station_id(station_id: Optional[str]) -> str:
    return str(station_id or '').strip().upper()


def get_url_for_station(station_id: Optional[str]) -> Optional[str]:
    """Look up a station's stream URL, or None if it is not in the catalog"""
    return STATION_URLS.get(normalize_station_id(station_id))
