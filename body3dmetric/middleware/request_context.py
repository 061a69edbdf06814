import time
import uuid

from flask import g, request


def register_request_context(app):
    """
    Correlation id + latency logging for every request.

    Accepts a client X-Request-ID or generates one, echoes it back on the response.
    """

    @app.before_request
    def open_request_context():
        g.request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        g.start_time = time.time()

    @app.after_request
    def close_request_context(response):
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")
        start = getattr(g, "start_time", None)
        app.logger.info({
            "component": "Body3D",
            "event": "request_completed",
            "request_id": getattr(g, "request_id", None),
            "endpoint": request.path,
            "method": request.method,
            "status": response.status_code,
            "latency_ms": int((time.time() - start) * 1000) if start else None,
        })
        return response
