"""Qdrant vector database implementation."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from types import TracebackType
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import exceptions as qdrant_exceptions
from qdrant_client.http import models

from code_vector_store.config import Settings
from code_vector_store.vector.base import (
    CollectionKind,
    HybridSearchOptions,
    HybridSearchRequest,
    SearchOptions,
    VectorDatabase,
    VectorDocument,
    VectorSearchResult,
)
from code_vector_store.vector.codec import (
    decode_document,
    encode_point,
    project_payload,
)
from code_vector_store.vector.connection import QdrantConnectionConfig
from code_vector_store.vector.errors import (
    BackendError,
    FilterSyntaxError,
    InvalidRequestError,
)
from code_vector_store.vector.filters import (
    FilterExpression,
    parse_filter,
    to_qdrant_filter,
)
from code_vector_store.vector.gate import ConnectionGate
from code_vector_store.vector.hybrid import (
    DENSE_VECTOR_NAME,
    FusionPolicy,
    HybridSearchOrchestrator,
    SparseRetriever,
)

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 100


class QdrantVectorDatabase(VectorDatabase):
    """Qdrant-backed vector database using the async REST client.

    The client is created by a background setup task started at construction;
    every operation waits for it before touching Qdrant.
    """

    def __init__(
        self,
        config: QdrantConnectionConfig | None = None,
        *,
        strict_filters: bool = False,
        sparse_retriever: SparseRetriever | None = None,
        fusion: FusionPolicy | None = None,
    ) -> None:
        """Initialize the Qdrant vector database.

        Args:
            config: Connection parameters; defaults to localhost:6333.
            strict_filters: Raise FilterSyntaxError for unsupported filter
                expressions instead of querying unfiltered.
            sparse_retriever: Optional sparse search extension for hybrid search.
            fusion: Fusion policy used with the sparse extension.
        """
        self._config = config or QdrantConnectionConfig()
        self._strict_filters = strict_filters
        self._gate: ConnectionGate[AsyncQdrantClient] = ConnectionGate(
            self._create_client, name="Qdrant"
        )
        self._hybrid = HybridSearchOrchestrator(
            self._search_dense,
            sparse_retriever=sparse_retriever,
            fusion=fusion,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> QdrantVectorDatabase:
        """Build an adapter from application settings."""
        kwargs.setdefault("strict_filters", settings.strict_filters)
        return cls(QdrantConnectionConfig.from_settings(settings), **kwargs)

    async def __aenter__(self) -> QdrantVectorDatabase:
        await self._gate.wait()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if it was created."""
        await self._gate.close(lambda client: client.close())

    async def create_collection(self, collection_name: str, dimension: int) -> None:
        """Create a collection with a single unnamed cosine vector."""
        client = await self._gate.wait()
        _validate_dimension(dimension)

        logger.info(
            "Creating Qdrant collection %s with dimension %d",
            collection_name,
            dimension,
        )
        with _backend_call():
            await client.create_collection(
                collection_name=collection_name,
                vectors_config=_vector_params(dimension),
            )
        logger.info("Qdrant collection %s created", collection_name)

    async def create_hybrid_collection(
        self, collection_name: str, dimension: int
    ) -> None:
        """Create a collection with a named dense cosine vector."""
        client = await self._gate.wait()
        _validate_dimension(dimension)

        logger.info(
            "Creating Qdrant hybrid collection %s with dimension %d",
            collection_name,
            dimension,
        )
        # Sparse vectors will live next to "dense" under their own name.
        with _backend_call():
            await client.create_collection(
                collection_name=collection_name,
                vectors_config={DENSE_VECTOR_NAME: _vector_params(dimension)},
            )
        logger.info("Qdrant hybrid collection %s created", collection_name)

    async def drop_collection(self, collection_name: str) -> None:
        client = await self._gate.wait()

        logger.info("Dropping Qdrant collection %s", collection_name)
        with _backend_call():
            await client.delete_collection(collection_name=collection_name)
        logger.info("Qdrant collection %s dropped", collection_name)

    async def has_collection(self, collection_name: str) -> bool:
        """Check whether a collection exists.

        Uses Qdrant's typed existence endpoint. Servers that predate it answer
        404 for the endpoint itself; for those, fall back to fetching the
        collection and treating a not-found response as False.
        """
        client = await self._gate.wait()

        try:
            return await client.collection_exists(collection_name=collection_name)
        except qdrant_exceptions.UnexpectedResponse as exc:
            if exc.status_code != 404:
                raise _to_backend_error(exc) from exc
        except qdrant_exceptions.ApiException as exc:
            raise _to_backend_error(exc) from exc

        logger.debug(
            "collection_exists unavailable, falling back to get_collection for %s",
            collection_name,
        )
        try:
            await client.get_collection(collection_name=collection_name)
        except qdrant_exceptions.ApiException as exc:
            if _is_not_found(exc):
                return False
            raise _to_backend_error(exc) from exc
        return True

    async def list_collections(self) -> list[str]:
        client = await self._gate.wait()

        with _backend_call():
            response = await client.get_collections()
        return [collection.name for collection in response.collections]

    async def insert(
        self, collection_name: str, documents: list[VectorDocument]
    ) -> None:
        """Insert documents into a simple collection, waiting for the write."""
        await self._upsert(collection_name, documents, CollectionKind.SIMPLE)

    async def insert_hybrid(
        self, collection_name: str, documents: list[VectorDocument]
    ) -> None:
        """Insert documents into a hybrid collection, waiting for the write.

        Only the dense vector is stored; no sparse vector is generated.
        """
        await self._upsert(collection_name, documents, CollectionKind.HYBRID)

    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        options: SearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        """Search a simple collection.

        Returned documents carry the query vector, since Qdrant is asked not
        to send stored vectors back.
        """
        client = await self._gate.wait()
        options = options or SearchOptions()
        if options.top_k <= 0:
            raise InvalidRequestError(f"top_k must be positive: {options.top_k}")

        logger.debug(
            "Searching Qdrant collection %s with limit %d",
            collection_name,
            options.top_k,
        )
        with _backend_call():
            response = await client.query_points(
                collection_name=collection_name,
                query=query_vector,
                limit=options.top_k,
                score_threshold=options.threshold,
                with_payload=True,
                with_vectors=False,
            )

        return [
            VectorSearchResult(
                document=decode_document(point.id, point.payload, query_vector),
                score=point.score,
            )
            for point in response.points
        ]

    async def hybrid_search(
        self,
        collection_name: str,
        requests: list[HybridSearchRequest],
        options: HybridSearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        """Search a hybrid collection.

        Ranking comes from the dense request only unless a sparse retriever
        was installed. Returned documents carry an empty vector.

        Raises:
            InvalidRequestError: If no dense request is present.
        """
        await self._gate.wait()

        logger.debug("Executing hybrid search on Qdrant collection %s", collection_name)
        return await self._hybrid.run(collection_name, requests, options)

    async def delete(self, collection_name: str, ids: list[str]) -> None:
        client = await self._gate.wait()
        if not ids:
            raise InvalidRequestError("delete requires at least one id")

        logger.info(
            "Deleting %d documents from Qdrant collection %s",
            len(ids),
            collection_name,
        )
        with _backend_call():
            await client.delete(
                collection_name=collection_name,
                points_selector=models.PointIdsList(points=list(ids)),
                wait=True,
            )
        logger.info("Deleted %d documents from %s", len(ids), collection_name)

    async def query(
        self,
        collection_name: str,
        filter_expr: str | None = None,
        output_fields: list[str] | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> list[dict[str, Any]]:
        """Scan a collection with an optional equality filter.

        Returns a single page of at most ``limit`` records.
        """
        client = await self._gate.wait()
        if limit <= 0:
            raise InvalidRequestError(f"limit must be positive: {limit}")

        expression = self._parse_filter(filter_expr)
        logger.debug(
            "Querying Qdrant collection %s with filter %r",
            collection_name,
            filter_expr,
        )
        with _backend_call():
            points, _ = await client.scroll(
                collection_name=collection_name,
                scroll_filter=to_qdrant_filter(expression),
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )

        return [
            project_payload(point.id, point.payload, output_fields or [])
            for point in points
        ]

    async def _create_client(self) -> AsyncQdrantClient:
        logger.info("Connecting to Qdrant at %s", self._config.target)
        return AsyncQdrantClient(**self._config.resolve_client_kwargs())

    async def _upsert(
        self,
        collection_name: str,
        documents: list[VectorDocument],
        kind: CollectionKind,
    ) -> None:
        client = await self._gate.wait()
        if not documents:
            raise InvalidRequestError("insert requires at least one document")

        logger.info(
            "Inserting %d %s documents into Qdrant collection %s",
            len(documents),
            kind.value,
            collection_name,
        )
        points = [encode_point(document, kind) for document in documents]
        with _backend_call():
            await client.upsert(
                collection_name=collection_name,
                points=points,
                wait=True,
            )
        logger.info("Inserted %d documents into %s", len(documents), collection_name)

    async def _search_dense(
        self, collection_name: str, vector: list[float], limit: int
    ) -> list[VectorSearchResult]:
        client = await self._gate.wait()
        with _backend_call():
            response = await client.query_points(
                collection_name=collection_name,
                query=vector,
                using=DENSE_VECTOR_NAME,
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        return [
            VectorSearchResult(
                document=decode_document(point.id, point.payload, []),
                score=point.score,
            )
            for point in response.points
        ]

    def _parse_filter(self, filter_expr: str | None) -> FilterExpression | None:
        try:
            return parse_filter(filter_expr)
        except FilterSyntaxError as exc:
            if self._strict_filters:
                raise
            logger.warning("%s; querying without a filter", exc)
            return None


def _vector_params(dimension: int) -> models.VectorParams:
    return models.VectorParams(size=dimension, distance=models.Distance.COSINE)


def _validate_dimension(dimension: int) -> None:
    if dimension <= 0:
        raise InvalidRequestError(f"Vector dimension must be positive: {dimension}")


@contextmanager
def _backend_call() -> Iterator[None]:
    """Wrap Qdrant client failures in BackendError."""
    try:
        yield
    except qdrant_exceptions.ApiException as exc:
        raise _to_backend_error(exc) from exc


def _to_backend_error(exc: qdrant_exceptions.ApiException) -> BackendError:
    if isinstance(exc, qdrant_exceptions.UnexpectedResponse):
        return BackendError(_response_message(exc), status_code=exc.status_code)
    return BackendError(str(exc))


def _response_message(exc: qdrant_exceptions.UnexpectedResponse) -> str:
    content = exc.content.decode("utf-8", errors="replace").strip()
    return content or exc.reason_phrase or str(exc)


def _is_not_found(exc: qdrant_exceptions.ApiException) -> bool:
    if isinstance(exc, qdrant_exceptions.UnexpectedResponse) and exc.status_code == 404:
        return True
    return "not found" in str(exc).lower()
