"""
Health check module for dns-reconciler.

This module provides health check endpoints for monitoring the application.
"""

import json
import logging
from functools import partial
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Thread


class HealthCheckHandler(BaseHTTPRequestHandler):
    """
    HTTP request handler for health check endpoints.
    """

    def __init__(self, controller, *args, **kwargs):
        self.controller = controller
        self.logger = logging.getLogger("dns-reconciler.health")
        super().__init__(*args, **kwargs)

    def do_GET(self):
        """
        Handle GET requests.
        """
        if self.path == "/health":
            self._handle_health_check()
        elif self.path == "/metrics":
            self._handle_metrics()
        else:
            self.send_response(404)
            self.end_headers()
            self.wfile.write(b"Not Found")

    def _handle_health_check(self):
        """
        Report whether the last reconciliation succeeded.
        """
        if self.controller.healthy:
            self.send_response(200)
            response = {
                "status": "healthy",
                "last_success": self.controller.last_success,
                "pending_deletions": self.controller.cleanup_tracker.get_pending_status(),
            }
        else:
            self.send_response(503)
            response = {"status": "unhealthy", "error": self.controller.last_error}

        self.send_header("Content-type", "application/json")
        self.end_headers()
        self.wfile.write(json.dumps(response).encode())

    def _handle_metrics(self):
        self.send_response(200)
        self.send_header("Content-type", "text/plain")
        self.end_headers()
        self.wfile.write(render_metrics(self.controller).encode())

    def log_message(self, format, *args):
        """
        Override log_message to use the application logger.
        """
        self.logger.debug(format % args)


def render_metrics(controller) -> str:
    """
    Render controller counters in the Prometheus text format.

    Args:
        controller: Controller whose counters are reported

    Returns:
        str: Metrics text
    """
    metrics = [
        "# HELP dns_reconciler_up Whether the last reconciliation succeeded",
        "# TYPE dns_reconciler_up gauge",
        f"dns_reconciler_up {1 if controller.healthy else 0}",
        "# HELP dns_reconciler_pending_deletions Records waiting out the cleanup delay",
        "# TYPE dns_reconciler_pending_deletions gauge",
        f"dns_reconciler_pending_deletions {len(controller.cleanup_tracker.get_pending_status())}",
    ]
    for name, value in controller.counters.items():
        metrics.extend(
            [
                f"# TYPE dns_reconciler_{name}_total counter",
                f"dns_reconciler_{name}_total {value}",
            ]
        )
    return "\n".join(metrics) + "\n"


class HealthCheckServer:
    """
    HTTP server for health check endpoints.
    """

    def __init__(self, controller, host: str = "0.0.0.0", port: int = 8080):
        """
        Initialize a HealthCheckServer.

        Args:
            controller: Controller reporting reconciliation status
            host: Host to bind to
            port: Port to bind to
        """
        self.controller = controller
        self.host = host
        self.port = port
        self.server = None
        self.thread = None
        self.logger = logging.getLogger("dns-reconciler.health")

    def start(self):
        """
        Start the health check server.
        """
        handler = partial(HealthCheckHandler, self.controller)
        self.server = HTTPServer((self.host, self.port), handler)
        self.thread = Thread(target=self.server.serve_forever)
        self.thread.daemon = True
        self.thread.start()
        self.logger.info(f"Health check: {self.host}:{self.server.server_port}/health")

    def stop(self):
        """
        Stop the health check server.
        """
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.logger.info("Health check server stopped")
