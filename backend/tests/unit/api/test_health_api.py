"""
Unit Tests for the health probes
"""
import pytest
from httpx import AsyncClient


class TestHealthEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get('/api/v1/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'

    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient):
        response = await client.get('/api/v1/health/live')

        assert response.status_code == 200
        assert response.json()['status'] == 'alive'

    @pytest.mark.asyncio
    async def test_readiness(self, client: AsyncClient):
        response = await client.get('/api/v1/health/ready')

        assert response.status_code == 200
        assert response.json()['checks']['database']['tables_ready'] is True

    @pytest.mark.asyncio
    async def test_deep_reports_missing_smtp(self, client: AsyncClient):
        response = await client.get('/api/v1/health/deep')

        assert response.status_code == 200
        data = response.json()
        assert data['checks']['email']['status'] == 'degraded'
        assert data['checks']['storage']['provider'] == 'local'
        assert data['status'] == 'degraded'
