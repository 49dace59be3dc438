"""
Tests for the health check endpoint.
"""

import pytest
from django.db import DatabaseError


@pytest.mark.django_db
class TestHealthCheck:
    def test_healthy(self, client):
        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected"}

    def test_database_unreachable(self, client, mocker):
        mocker.patch("core.views.connection.cursor", side_effect=DatabaseError("down"))

        response = client.get("/health/")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
