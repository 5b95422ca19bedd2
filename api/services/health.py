# SPDX-License-Identifier: Apache-2.0

"""
Health Check Service

Reports MongoDB connectivity, JWT key configuration and basic process and
host metrics.
"""

import os
import time
import psutil
from datetime import datetime
from typing import Dict, Any
from opentelemetry import trace

from models.base import utcnow
from services.mongodb import MongoDBService

tracer = trace.get_tracer(__name__)

SERVICE_NAME = "bagizi-sppg-api"


class HealthCheckService:
    """Service for system health monitoring."""

    def __init__(self, mongodb_service: MongoDBService, service_version: str = "1.0.0"):
        self.mongodb_service = mongodb_service
        self.service_version = service_version
        self.started_at = time.time()

    def get_comprehensive_health(self) -> Dict[str, Any]:
        """Health status of the service and its database."""
        with tracer.start_as_current_span("health.comprehensive_check") as span:
            start_time = time.time()

            mongodb_health = self._check_mongodb_health()
            overall_status = "healthy" if mongodb_health["status"] == "healthy" else "unhealthy"
            response_time_ms = round((time.time() - start_time) * 1000, 2)

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.mongodb_status": mongodb_health["status"]
            })

            return {
                "status": overall_status,
                "service": SERVICE_NAME,
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": utcnow().isoformat(),
                "response_time_ms": response_time_ms,
                "uptime_seconds": round(time.time() - self.started_at, 2),
                "dependencies": {
                    "mongodb": mongodb_health
                },
                "system_metrics": self._get_system_metrics(),
                "configuration": self._get_configuration_status()
            }

    def _check_mongodb_health(self) -> Dict[str, Any]:
        with tracer.start_as_current_span("health.mongodb_check") as span:
            start_time = time.time()
            health_info = dict(self.mongodb_service.health_check())
            health_info["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
            health_info["last_check"] = utcnow().isoformat()

            span.set_attributes({
                "mongodb.status": health_info["status"],
                "mongodb.response_time_ms": health_info["response_time_ms"]
            })
            return health_info

    def _get_system_metrics(self) -> Dict[str, Any]:
        """CPU, memory and process metrics; failures are reported, not raised."""
        try:
            memory = psutil.virtual_memory()
            process = psutil.Process(os.getpid())

            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory": {
                    "used_mb": round(memory.used / 1024 / 1024, 2),
                    "total_mb": round(memory.total / 1024 / 1024, 2),
                    "percent": memory.percent
                },
                "process": {
                    "pid": process.pid,
                    "rss_mb": round(process.memory_info().rss / 1024 / 1024, 2),
                    "started_at": datetime.fromtimestamp(process.create_time()).isoformat()
                },
                "load_average": list(os.getloadavg()) if hasattr(os, 'getloadavg') else None
            }
        except (psutil.Error, OSError) as e:
            return {
                "error": f"Failed to collect system metrics: {str(e)}"
            }

    def _get_configuration_status(self) -> Dict[str, Any]:
        return {
            "mongodb_uri_configured": bool(os.getenv('MONGODB_URI')),
            "jwt_public_key_configured": bool(os.getenv('JWT_PUBLIC_KEY')),
            "otel_enabled": os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
            "environment": os.getenv('ENVIRONMENT', 'development')
        }
