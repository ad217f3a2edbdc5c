"""
HTTP endpoint serving the current title of catalog stations
"""

from datetime import datetime, timezone
from typing import Optional

from flask import Flask, Response, jsonify, request

from ..core.config import ServiceConfig
from ..core.fetcher import IcyFetcher
from ..core.logger import get_logger
from ..stations import get_url_for_station, normalize_station_id


def create_app(fetcher: Optional[IcyFetcher] = None,
               config: Optional[ServiceConfig] = None) -> Flask:
    """Create the Flask application for the now-playing API."""
    config = config or ServiceConfig()
    logger = get_logger('icy_nowplaying.api', config.log_file, level=config.log_level)
    fetcher = fetcher or IcyFetcher(config.fetcher, logger)

    app = Flask(__name__)

    @app.route('/health', methods=['GET'])
    def health():
        """Health check endpoint."""
        return jsonify({
            'status': 'ok',
            'service': 'icy-nowplaying',
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    @app.route('/api/nowplaying', methods=['GET'])
    def nowplaying():
        """Current StreamTitle for ?station=ID; 204 when nothing is available."""
        station = normalize_station_id(request.args.get('station'))
        url = get_url_for_station(station)
        if not url:
            return jsonify({'error': 'Unsupported station'}), 400

        try:
            title = fetcher.fetch(url)
        except Exception as e:
            logger.error("Now-playing lookup failed", station=station, error=str(e))
            return Response(status=204)

        if not title:
            return Response(status=204)

        response = jsonify({'title': title})
        response.headers['Cache-Control'] = 'no-store'
        return response

    return app
