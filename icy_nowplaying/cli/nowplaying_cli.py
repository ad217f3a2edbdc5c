"""
CLI for icy_nowplaying
"""

import sys
import time
from typing import Optional

import click

from ..core.config import FetcherConfig, ServiceConfig, load_config
from ..core.fetcher import IcyFetcher
from ..core.logger import get_logger
from ..core.poller import NowPlayingPoller
from ..core.result import FetchResult
from ..stations import STATION_URLS, get_url_for_station

PLACEHOLDER = 'No title available'


def _make_logger(config: ServiceConfig, name: str):
    return get_logger(f"icy_nowplaying.{name}", config.log_file, level=config.log_level)


def _make_fetcher(config: ServiceConfig, timeout: Optional[float] = None) -> IcyFetcher:
    fetcher_config = config.fetcher
    if timeout is not None:
        settings = fetcher_config.to_dict()
        settings['timeout'] = timeout
        fetcher_config = FetcherConfig.from_dict(settings)
    return IcyFetcher(fetcher_config, _make_logger(config, 'fetcher'))


def _echo_result(result: FetchResult, verbose: bool):
    click.echo(result.title or PLACEHOLDER)
    if verbose:
        reason = result.reason.value if result.reason else 'ok'
        click.echo(f"reason: {reason}", err=True)
        click.echo(f"redirects: {result.redirects}", err=True)
        click.echo(f"final url: {result.url}", err=True)
        click.echo(f"elapsed: {result.elapsed:.2f}s", err=True)


@click.group()
@click.option('--env-file', type=click.Path(dir_okay=False), default=None,
              help='Load settings from this .env file')
@click.option('--log-level', default=None, help='Console log level (overrides ICY_LOG_LEVEL)')
@click.pass_context
def main(ctx, env_file, log_level):
    """Fetch now-playing titles from ICY (SHOUTcast/Icecast) streams."""
    try:
        config = load_config(env_file)
    except ValueError as e:
        raise click.UsageError(str(e))
    if log_level:
        config.log_level = log_level.upper()
    ctx.obj = config


@main.command()
@click.argument('url')
@click.option('--timeout', type=float, default=None, help='Overall time budget in seconds')
@click.option('--verbose', '-v', is_flag=True, help='Print why no title was found')
@click.pass_obj
def fetch(config, url, timeout, verbose):
    """Print the current title of the stream at URL."""
    _echo_result(_make_fetcher(config, timeout).fetch_result(url), verbose)


@main.command()
@click.argument('station_id')
@click.option('--timeout', type=float, default=None, help='Overall time budget in seconds')
@click.option('--verbose', '-v', is_flag=True, help='Print why no title was found')
@click.pass_obj
def station(config, station_id, timeout, verbose):
    """Print the current title of a catalog station."""
    url = get_url_for_station(station_id)
    if not url:
        click.echo(f"Unsupported station: {station_id}", err=True)
        sys.exit(2)
    _echo_result(_make_fetcher(config, timeout).fetch_result(url), verbose)


@main.command()
def stations():
    """List the catalog stations."""
    for station_id, url in STATION_URLS.items():
        click.echo(f"{station_id}\t{url}")


@main.command()
@click.argument('station_id')
@click.option('--interval', type=float, default=None, help='Seconds between polls')
@click.pass_obj
def watch(config, station_id, interval):
    """Poll a catalog station and print every title update."""
    url = get_url_for_station(station_id)
    if not url:
        click.echo(f"Unsupported station: {station_id}", err=True)
        sys.exit(2)

    def show(title):
        click.echo(f"[{time.strftime('%H:%M:%S')}] {title or PLACEHOLDER}")

    poller = NowPlayingPoller(url, show, fetcher=_make_fetcher(config),
                              interval=interval or config.poll_interval,
                              logger=_make_logger(config, 'poller'))
    poller.start()
    try:
        # Keep main thread alive
        while poller.running:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\nStopping poller...")
    finally:
        poller.stop(timeout=1.0)


@main.command()
@click.option('--host', default=None, help='Interface to bind (overrides ICY_HOST)')
@click.option('--port', type=int, default=None, help='Port to listen on (overrides ICY_PORT)')
@click.pass_obj
def serve(config, host, port):
    """Serve GET /api/nowplaying?station=ID."""
    from ..api.app import create_app

    app = create_app(config=config)
    app.run(host=host or config.host, port=port or config.port,
            debug=False, use_reloader=False, threaded=True)


if __name__ == '__main__':
    main()
