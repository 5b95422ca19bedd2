# SPDX-License-Identifier: Apache-2.0

"""
Bagizi SPPG API - Flask Application Entry Point

Creates the OpenAPI-enabled Flask application for the SPPG rules and
aggregation service: nutrition and cost calculation, distribution schedule
workflow, beneficiary validation, menu plan review and demo request
onboarding.
"""

import os
import logging
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag
from observability.config import setup_observability
from observability.middleware import add_observability_middleware

from middleware.error_handler import ErrorHandlerMiddleware
from middleware.auth import AuthMiddleware
from models.responses import HealthCheckResponse
from services.audit import AuditService
from services.auth import AuthService
from services.hal import create_hal_formatter
from services.health import HealthCheckService
from services.mongodb import MongoDBService

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

info = Info(
    title="Bagizi SPPG API",
    version=SERVICE_VERSION,
    description="Multi-tenant SPPG nutrition distribution rules service with HAL responses"
)

health_tag = Tag(name="Health", description="System health and status")


def load_config(app) -> None:
    """Read configuration from the environment into ``app.config``."""
    app.config['ENVIRONMENT'] = os.getenv('ENVIRONMENT', 'development')
    app.config['DEBUG'] = app.config['ENVIRONMENT'] == 'development'
    app.config['DOCS_ENABLED'] = os.getenv('DOCS_ENABLED', 'true').lower() == 'true'
    app.config['OTEL_ENABLED'] = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'

    app.config['MONGODB_URI'] = os.getenv('MONGODB_URI', 'mongodb://localhost:27017/bagizi_dev')
    app.config['MONGODB_DATABASE'] = os.getenv('MONGODB_DATABASE', 'bagizi_dev')

    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES_MINUTES', '15'))
    app.config['BASE_URL'] = os.getenv('BASE_URL', 'http://localhost:5000')


def register_blueprints(app) -> None:
    from routes.menus import menus_bp
    from routes.distribution import distribution_bp
    from routes.schools import schools_bp
    from routes.programs import programs_bp
    from routes.menu_plans import menu_plans_bp
    from routes.demo_requests import admin_demo_bp, public_demo_bp

    for blueprint in (menus_bp, distribution_bp, schools_bp, programs_bp,
                      menu_plans_bp, public_demo_bp, admin_demo_bp):
        app.register_api(blueprint)


def create_app(mongodb_service: MongoDBService = None, auth_service: AuthService = None) -> OpenAPI:
    """
    Build the application.

    Services can be injected for tests; otherwise they are created from the
    environment configuration.
    """
    app = OpenAPI(__name__, info=info)
    load_config(app)

    add_observability_middleware(app)

    mongodb_service = mongodb_service or MongoDBService(
        app.config['MONGODB_URI'], app.config['MONGODB_DATABASE']
    )
    auth_service = auth_service or AuthService(
        access_token_expire_minutes=app.config['JWT_ACCESS_TOKEN_EXPIRES']
    )
    hal_formatter = create_hal_formatter(app.config['BASE_URL'])
    health_service = HealthCheckService(mongodb_service, SERVICE_VERSION)

    ErrorHandlerMiddleware(app, hal_formatter)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.auth_service = auth_service
    app.auth_middleware = AuthMiddleware(auth_service)
    app.audit_service = AuditService(mongodb_service)
    app.hal_formatter = hal_formatter
    app.health_service = health_service

    register_blueprints(app)

    @app.get('/api/healthz', tags=[health_tag], responses={"200": HealthCheckResponse, "503": HealthCheckResponse})
    def health_check():
        """Service and database health; 503 while MongoDB is unreachable."""
        health_data = health_service.get_comprehensive_health()
        status_code = 200 if health_data["status"] == "healthy" else 503

        return jsonify(hal_formatter.format_resource(health_data, "/api/healthz")), status_code

    logger.info(
        "Application created",
        extra={"environment": app.config['ENVIRONMENT'], "base_url": app.config['BASE_URL']}
    )
    return app


setup_observability()
app = create_app()


if __name__ == '__main__':
    # Development server
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
