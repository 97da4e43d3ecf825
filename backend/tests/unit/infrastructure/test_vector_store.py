"""Tests for the optional Qdrant vector store wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from qdrant_client.http.exceptions import UnexpectedResponse

from app.infrastructure.vector_store import (
    VectorStoreError,
    VectorStoreService,
    connect_vector_store,
)


def _collections(*names: str) -> SimpleNamespace:
    return SimpleNamespace(collections=[SimpleNamespace(name=n) for n in names])


def _unexpected(status_code: int, reason: str) -> UnexpectedResponse:
    return UnexpectedResponse(status_code, reason, b"{}", httpx.Headers())


@pytest.fixture
def client():
    client = AsyncMock()
    client.get_collections = AsyncMock(return_value=_collections("conversations"))
    return client


@pytest.fixture
def service(client):
    return VectorStoreService("http://qdrant:6333", client=client)


class TestVectorStoreService:
    @pytest.mark.asyncio
    async def test_health_check_ok(self, service, client):
        await service.health_check()
        client.get_collections.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_check_failure(self, service, client):
        client.get_collections.side_effect = ConnectionError("refused")
        with pytest.raises(VectorStoreError, match="refused"):
            await service.health_check()

    @pytest.mark.asyncio
    async def test_list_collections(self, service):
        assert await service.list_collections() == ["conversations"]

    @pytest.mark.asyncio
    async def test_ensure_existing_collection(self, service, client):
        assert await service.ensure_collection("conversations") is True
        client.create_collection.assert_not_called()

    @pytest.mark.asyncio
    async def test_ensure_missing_collection_without_dimensions(self, service, client):
        assert await service.ensure_collection("documents") is False
        client.create_collection.assert_not_called()

    @pytest.mark.asyncio
    async def test_ensure_missing_collection_creates(self, service, client):
        assert await service.ensure_collection("documents", dimensions=384) is True

        kwargs = client.create_collection.call_args.kwargs
        assert kwargs["collection_name"] == "documents"
        assert kwargs["vectors_config"].size == 384

    @pytest.mark.asyncio
    async def test_create_failure_wrapped(self, service, client):
        client.create_collection.side_effect = _unexpected(500, "Internal Server Error")
        with pytest.raises(VectorStoreError):
            await service.ensure_collection("documents", dimensions=384)

    @pytest.mark.asyncio
    async def test_delete_collection(self, service, client):
        client.delete_collection.return_value = True
        assert await service.delete_collection("conversations") is True

        client.delete_collection.return_value = False
        assert await service.delete_collection("missing") is False

    @pytest.mark.asyncio
    async def test_delete_not_found(self, service, client):
        client.delete_collection.side_effect = _unexpected(404, "Not Found")
        assert await service.delete_collection("missing") is False

    @pytest.mark.asyncio
    async def test_close(self, service, client):
        await service.close()
        client.close.assert_awaited_once()


class TestConnectVectorStore:
    @pytest.mark.asyncio
    async def test_returns_service_when_reachable(self):
        with patch("app.infrastructure.vector_store.AsyncQdrantClient") as client_cls:
            client_cls.return_value.get_collections = AsyncMock(return_value=_collections())
            service = await connect_vector_store("http://qdrant:6333")

        assert isinstance(service, VectorStoreService)

    @pytest.mark.asyncio
    async def test_returns_none_when_unreachable(self):
        with patch("app.infrastructure.vector_store.AsyncQdrantClient") as client_cls:
            client_cls.return_value.get_collections = AsyncMock(side_effect=ConnectionError("down"))
            client_cls.return_value.close = AsyncMock()
            service = await connect_vector_store("http://qdrant:6333")

        assert service is None
        client_cls.return_value.close.assert_awaited_once()
