"""
Configuration for the ICY fetcher and the now-playing service
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

DEFAULT_TIMEOUT = 6.0
DEFAULT_MAX_REDIRECTS = 3
DEFAULT_OVERFLOW_LIMIT = 1024
DEFAULT_CHUNK_SIZE = 4096
DEFAULT_REDIRECT_DRAIN_LIMIT = 64 * 1024
DEFAULT_USER_AGENT = 'Mozilla/5.0'
DEFAULT_POLL_INTERVAL = 30.0


class FetcherConfig:
    """Time and data bounds for a single ICY title fetch"""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT,
                 max_redirects: int = DEFAULT_MAX_REDIRECTS,
                 overflow_limit: int = DEFAULT_OVERFLOW_LIMIT,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 redirect_drain_limit: int = DEFAULT_REDIRECT_DRAIN_LIMIT,
                 user_agent: str = DEFAULT_USER_AGENT):
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if max_redirects < 0:
            raise ValueError(f"max_redirects must not be negative, got {max_redirects}")
        if overflow_limit < 0:
            raise ValueError(f"overflow_limit must not be negative, got {overflow_limit}")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.timeout = float(timeout)
        self.max_redirects = int(max_redirects)
        self.overflow_limit = int(overflow_limit)
        self.chunk_size = int(chunk_size)
        self.redirect_drain_limit = int(redirect_drain_limit)
        self.user_agent = user_agent

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'FetcherConfig':
        """Create a FetcherConfig from a dictionary"""
        return cls(
            timeout=config.get('timeout', DEFAULT_TIMEOUT),
            max_redirects=config.get('max_redirects', DEFAULT_MAX_REDIRECTS),
            overflow_limit=config.get('overflow_limit', DEFAULT_OVERFLOW_LIMIT),
            chunk_size=config.get('chunk_size', DEFAULT_CHUNK_SIZE),
            redirect_drain_limit=config.get('redirect_drain_limit', DEFAULT_REDIRECT_DRAIN_LIMIT),
            user_agent=config.get('user_agent', DEFAULT_USER_AGENT)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return {
            'timeout': self.timeout,
            'max_redirects': self.max_redirects,
            'overflow_limit': self.overflow_limit,
            'chunk_size': self.chunk_size,
            'redirect_drain_limit': self.redirect_drain_limit,
            'user_agent': self.user_agent
        }


class ServiceConfig:
    """Settings for the poller, HTTP endpoint and logging around the fetcher"""

    def __init__(self, fetcher: Optional[FetcherConfig] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 host: str = '127.0.0.1', port: int = 3000,
                 log_level: str = 'INFO', log_file: Optional[str] = None):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.fetcher = fetcher or FetcherConfig()
        self.poll_interval = float(poll_interval)
        self.host = host
        self.port = int(port)
        self.log_level = log_level.upper()
        self.log_file = log_file

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'ServiceConfig':
        """Create a ServiceConfig from a dictionary"""
        return cls(
            fetcher=FetcherConfig.from_dict(config.get('fetcher', {})),
            poll_interval=config.get('poll_interval', DEFAULT_POLL_INTERVAL),
            host=config.get('host', '127.0.0.1'),
            port=config.get('port', 3000),
            log_level=config.get('log_level', 'INFO'),
            log_file=config.get('log_file')
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return {
            'fetcher': self.fetcher.to_dict(),
            'poll_interval': self.poll_interval,
            'host': self.host,
            'port': self.port,
            'log_level': self.log_level,
            'log_file': self.log_file
        }


def _env(name: str, cast, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def load_config(env_file: Optional[str] = None) -> ServiceConfig:
    """Build a ServiceConfig from the environment, loading a .env file first"""
    if env_file:
        load_dotenv(env_file, override=True)
    else:
        load_dotenv()

    fetcher = FetcherConfig(
        timeout=_env('ICY_TIMEOUT', float, DEFAULT_TIMEOUT),
        max_redirects=_env('ICY_MAX_REDIRECTS', int, DEFAULT_MAX_REDIRECTS),
        overflow_limit=_env('ICY_OVERFLOW_LIMIT', int, DEFAULT_OVERFLOW_LIMIT),
        chunk_size=_env('ICY_CHUNK_SIZE', int, DEFAULT_CHUNK_SIZE),
        user_agent=_env('ICY_USER_AGENT', str, DEFAULT_USER_AGENT)
    )
    return ServiceConfig(
        fetcher=fetcher,
        poll_interval=_env('ICY_POLL_INTERVAL', float, DEFAULT_POLL_INTERVAL),
        host=_env('ICY_HOST', str, '127.0.0.1'),
        port=_env('ICY_PORT', int, 3000),
        log_level=_env('ICY_LOG_LEVEL', str, 'INFO'),
        log_file=_env('ICY_LOG_FILE', str, None)
    )
