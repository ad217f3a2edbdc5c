"""
icy_nowplaying - Now-playing titles from ICY (SHOUTcast/Icecast) streams
"""

__version__ = '0.1.0'

from .core.config import FetcherConfig, ServiceConfig, load_config
from .core.fetcher import IcyFetcher, fetch_icy_title
from .core.logger import get_logger
from .core.parser import IcyFrameParser, extract_stream_title, parse_metaint
from .core.poller import NowPlayingPoller
from .core.result import FailureReason, FetchResult
from .stations import STATION_URLS, get_url_for_station

__all__ = [
    'FetcherConfig',
    'ServiceConfig',
    'load_config',
    'IcyFetcher',
    'fetch_icy_title',
    'get_logger',
    'IcyFrameParser',
    'extract_stream_title',
    'parse_metaint',
    'NowPlayingPoller',
    'FailureReason',
    'FetchResult',
    'STATION_URLS',
    'get_url_for_station'
]
