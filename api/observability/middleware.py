# SPDX-License-Identifier: Apache-2.0

"""
Observability Middleware

Flask instrumentation plus per-request timing, request ids and a
structured completion log line.
"""

import time
import uuid
import logging
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)


def add_observability_middleware(app: Flask):
    """Add OpenTelemetry instrumentation and request logging to a Flask app."""
    FlaskInstrumentor().instrument_app(app)

    @app.before_request
    def before_request():
        g.start_time = time.time()
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        g.trace_id = None

        span = trace.get_current_span()
        if span.is_recording():
            g.trace_id = format(span.get_span_context().trace_id, "032x")
            span.set_attributes({
                "http.request_id": g.request_id,
                "http.user_agent": request.headers.get("User-Agent", ""),
                "http.remote_addr": request.remote_addr or ""
            })

    @app.after_request
    def after_request(response):
        duration_ms = round((time.time() - g.get('start_time', time.time())) * 1000, 2)
        user_context = g.get('user_context')

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("http.duration_ms", duration_ms)
            if user_context is not None:
                span.set_attributes({"user.id": user_context.user_id, "user.role": user_context.role})

        logger.info(
            "HTTP request completed",
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "request_id": g.get('request_id'),
                "trace_id": g.get('trace_id'),
                "user_id": user_context.user_id if user_context else None,
                "sppg_id": user_context.sppg_id if user_context else None
            }
        )

        if g.get('request_id'):
            response.headers['X-Request-ID'] = g.request_id
        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id

        return response
