# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the health check service and the /api/healthz endpoint.
"""

import pytest
from unittest.mock import MagicMock, patch

import psutil

from services.health import HealthCheckService
from services.mongodb import MongoDBService


class TestHealthCheckEndpoint:
    """Test cases for the /api/healthz endpoint."""

    def test_health_check_success(self, client):
        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = response.get_json()

        assert data['status'] == 'healthy'
        assert data['service'] == 'bagizi-sppg-api'
        assert data['version'] == '1.0.0'
        assert data['dependencies']['mongodb']['status'] == 'healthy'
        assert 'response_time_ms' in data['dependencies']['mongodb']
        assert data['_links']['self']['href'].endswith('/api/healthz')

    def test_health_check_unhealthy_database(self, client, mock_mongo):
        mock_mongo.health_check.return_value = {
            'status': 'unhealthy',
            'error': 'connection refused',
            'database': 'bagizi_test'
        }

        response = client.get('/api/healthz')

        assert response.status_code == 503
        data = response.get_json()
        assert data['status'] == 'unhealthy'
        assert data['dependencies']['mongodb']['error'] == 'connection refused'

    def test_health_check_needs_no_token(self, client):
        response = client.get('/api/healthz')

        assert response.status_code == 200
        assert response.headers.get('X-Request-ID')

    def test_request_id_is_echoed(self, client):
        response = client.get('/api/healthz', headers={'X-Request-ID': 'req-123'})

        assert response.headers['X-Request-ID'] == 'req-123'


class TestHealthCheckService:

    @pytest.fixture
    def mongo(self):
        mongo = MagicMock(spec=MongoDBService)
        mongo.health_check.return_value = {'status': 'healthy', 'ping': True, 'version': '7.0.0',
                                           'database': 'bagizi_test'}
        return mongo

    def test_comprehensive_health(self, mongo):
        health = HealthCheckService(mongo, "2.1.0").get_comprehensive_health()

        assert health['status'] == 'healthy'
        assert health['version'] == '2.1.0'
        assert health['dependencies']['mongodb']['version'] == '7.0.0'
        assert 'last_check' in health['dependencies']['mongodb']
        assert health['uptime_seconds'] >= 0
        assert set(health['configuration']) == {
            'mongodb_uri_configured', 'jwt_public_key_configured', 'otel_enabled', 'environment'
        }

    def test_mongodb_result_is_not_mutated(self, mongo):
        result = mongo.health_check.return_value

        HealthCheckService(mongo).get_comprehensive_health()

        assert 'response_time_ms' not in result

    def test_system_metrics(self, mongo):
        metrics = HealthCheckService(mongo).get_comprehensive_health()['system_metrics']

        assert 'cpu_percent' in metrics
        assert metrics['memory']['total_mb'] > 0
        assert metrics['process']['pid'] > 0

    def test_system_metrics_failure_is_reported(self, mongo):
        with patch('services.health.psutil.virtual_memory', side_effect=psutil.Error("denied")):
            metrics = HealthCheckService(mongo).get_comprehensive_health()['system_metrics']

        assert metrics['error'].startswith('Failed to collect system metrics')
