"""Tests for http_client — shared client lifecycle."""

import pytest

from bugreport.services.http_client import close_shared_client, get_shared_client


def test_shared_client_is_reused(mock_settings):
    assert get_shared_client() is get_shared_client()


def test_shared_client_uses_base_url(mock_settings):
    client = get_shared_client()
    assert client.base_url.host == "test"


@pytest.mark.asyncio
async def test_closed_client_is_replaced(mock_settings):
    first = get_shared_client()
    await close_shared_client()

    second = get_shared_client()

    assert first.is_closed
    assert second is not first
    await close_shared_client()
