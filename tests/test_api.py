"""Tests for the main API endpoints."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_read_root(async_client: AsyncClient):
    """Test if the root endpoint returns the correct message."""
    response = await async_client.get("/")

    # Assert that the request was successful
    assert response.status_code == 200
    assert response.json() == {"message": "Welcome to the CourtRank API"}


@pytest.mark.asyncio
async def test_health_check_needs_no_token(async_client: AsyncClient):
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(async_client: AsyncClient):
    response = await async_client.get("/health", headers={"X-Request-ID": "abc123"})

    assert response.headers["X-Request-ID"] == "abc123"
