"""
JSON API over the ranked signals.

Routes:
    GET /signals?drug=<drug_id>   top signals, optionally for one drug
    GET /events/<drug_id>         events for one drug by recent ROR
"""

import http.server
import json
import logging
import socketserver
from functools import partial
from urllib.parse import parse_qs, unquote, urlparse

from rwe_signals.config import Config
from rwe_signals.serving import list_events, list_signals
from rwe_signals.storage import StorageError

logger = logging.getLogger(__name__)


class SignalHandler(http.server.BaseHTTPRequestHandler):
    """Request handler serving signal queries as JSON."""

    def __init__(self, *args, config: Config, **kwargs):
        self.config = config
        super().__init__(*args, **kwargs)

    def do_GET(self):
        """Handle GET requests with custom routing."""
        parsed = urlparse(self.path)
        path = unquote(parsed.path).rstrip("/")

        try:
            if path == "/signals":
                drug = parse_qs(parsed.query).get("drug", [None])[0]
                rows = list_signals(self.config, drug=drug)
                self._send_json(200, [r.model_dump() for r in rows])
                return

            if path.startswith("/events/"):
                drug_id = path[len("/events/"):]
                if not drug_id or "/" in drug_id:
                    self._send_json(404, {"error": "Not found"})
                    return
                rows = list_events(self.config, drug_id)
                self._send_json(200, [r.model_dump() for r in rows])
                return

        except StorageError as e:
            logger.error("Failed to load signals: %s", e)
            self._send_json(500, {"error": str(e)})
            return

        self._send_json(404, {"error": "Not found"})

    def _send_json(self, status_code: int, data):
        """Send a JSON response."""
        body = json.dumps(data).encode()
        self.send_response(status_code)
        self.send_header("Content-type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)


class SignalServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


def create_server(config: Config, host: str, port: int) -> SignalServer:
    """Bind a threaded HTTP server for the signal API."""
    handler = partial(SignalHandler, config=config)
    return SignalServer((host, port), handler)


def serve(config: Config, host: str, port: int) -> None:
    """Serve the signal API until interrupted."""
    with create_server(config, host, port) as httpd:
        logger.info("Serving signal API on http://%s:%d", host, port)
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Server stopped")
