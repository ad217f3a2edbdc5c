"""
Outcome types shared by the frame parser and the fetcher
"""

from enum import Enum
from typing import Any, Dict, Optional


class FailureReason(Enum):
    """Why a fetch produced no title. Only used for diagnostics."""

    UNSUPPORTED_SCHEME = 'unsupported_scheme'
    TRANSPORT = 'transport'
    TIMEOUT = 'timeout'
    REDIRECT_LIMIT = 'redirect_limit'
    NO_METAINT = 'no_metaint'
    EMPTY_METADATA = 'empty_metadata'
    NO_STREAM_TITLE = 'no_stream_title'
    BYTE_LIMIT = 'byte_limit'
    STREAM_ENDED = 'stream_ended'


class FetchResult:
    """Title plus diagnostics for one fetch; `title` is None on every failure"""

    def __init__(self, url: str, title: Optional[str] = None,
                 reason: Optional[FailureReason] = None,
                 redirects: int = 0, elapsed: float = 0.0):
        self.url = url
        self.title = title
        self.reason = reason
        self.redirects = redirects
        self.elapsed = elapsed

    @property
    def ok(self) -> bool:
        return self.reason is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'title': self.title,
            'reason': self.reason.value if self.reason else None,
            'redirects': self.redirects,
            'elapsed': round(self.elapsed, 3)
        }

    def __repr__(self) -> str:
        return (f"FetchResult(url={self.url!r}, title={self.title!r}, "
                f"reason={self.reason}, redirects={self.redirects})")
