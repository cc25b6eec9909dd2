"""
Test health and metrics endpoints
"""

import asyncio

from fastapi.testclient import TestClient

from app.api.health import health_check
from app.main import app

client = TestClient(app)


def test_health_endpoint():
    """Test that health endpoint returns 200 and correct response"""
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_endpoint_direct():
    """Test health endpoint directly"""
    result = asyncio.run(health_check())
    assert result == {"status": "ok"}


def test_metrics_endpoint_uses_route_templates():
    """Request counters are labelled by route template, not by concrete path"""
    client.get("/api/v1/health")
    response = client.get("/metrics")

    assert response.status_code == 200
    assert 'http_requests_total{method="GET",endpoint="/api/v1/health",status="200"}' in response.text
