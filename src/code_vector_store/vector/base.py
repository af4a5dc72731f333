"""Vector database interfaces and data models."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CollectionKind(Enum):
    """Vector layout of a collection."""

    SIMPLE = "simple"  # one unnamed dense vector
    HYBRID = "hybrid"  # named dense vector, room reserved for a sparse one


@dataclass
class VectorDocument:
    """A stored unit of searchable code content."""

    id: str
    vector: list[float]
    content: str
    relative_path: str
    start_line: int
    end_line: int
    file_extension: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorSearchResult:
    """A single result from vector search.

    The document's vector is not guaranteed to be the stored embedding.
    """

    document: VectorDocument
    score: float


@dataclass
class SearchOptions:
    """Options for plain dense search."""

    top_k: int = 10
    threshold: float = 0.0


@dataclass
class HybridSearchRequest:
    """A search request against one logical vector field."""

    anns_field: str
    data: list[float] | str | dict[str, Any]
    limit: int = 10
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class HybridSearchOptions:
    """Options for hybrid search."""

    limit: int | None = None


class VectorDatabase(ABC):
    """Abstract interface every vector database backend must satisfy.

    Contract:
        Every operation waits for the backend connection to be ready before
        issuing a call. Backend failures surface as BackendError, calls made
        without a usable connection fail with NotInitializedError, and
        precondition violations fail with InvalidRequestError. Nothing is
        retried.
    """

    @abstractmethod
    async def create_collection(self, collection_name: str, dimension: int) -> None:
        """Create a simple collection with a single dense vector (cosine)."""
        ...

    @abstractmethod
    async def create_hybrid_collection(
        self, collection_name: str, dimension: int
    ) -> None:
        """Create a hybrid collection with a named dense vector (cosine)."""
        ...

    @abstractmethod
    async def drop_collection(self, collection_name: str) -> None:
        """Drop a collection."""
        ...

    @abstractmethod
    async def has_collection(self, collection_name: str) -> bool:
        """Return True if the collection exists."""
        ...

    @abstractmethod
    async def list_collections(self) -> list[str]:
        """List existing collection names in backend order."""
        ...

    @abstractmethod
    async def insert(
        self, collection_name: str, documents: list[VectorDocument]
    ) -> None:
        """Insert documents into a simple collection.

        Args:
            collection_name: Target collection.
            documents: Non-empty list of documents whose vectors match the
                collection dimension.
        """
        ...

    @abstractmethod
    async def insert_hybrid(
        self, collection_name: str, documents: list[VectorDocument]
    ) -> None:
        """Insert documents into a hybrid collection."""
        ...

    @abstractmethod
    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        options: SearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        """Search for similar documents.

        Args:
            collection_name: Collection to search.
            query_vector: Dense query embedding.
            options: Result count and minimum score.

        Returns:
            Up to top_k results ordered by descending score.
        """
        ...

    @abstractmethod
    async def hybrid_search(
        self,
        collection_name: str,
        requests: list[HybridSearchRequest],
        options: HybridSearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        """Search a hybrid collection with one request per vector field."""
        ...

    @abstractmethod
    async def delete(self, collection_name: str, ids: list[str]) -> None:
        """Delete documents by id."""
        ...

    @abstractmethod
    async def query(
        self,
        collection_name: str,
        filter_expr: str | None = None,
        output_fields: list[str] | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Fetch documents matching a filter expression.

        Args:
            collection_name: Collection to scan.
            filter_expr: Optional expression such as ``relativePath == "src/a.ts"``.
            output_fields: Payload fields to include next to ``id``; None returns
                ids only.
            limit: Maximum number of records.

        Returns:
            One dict per matching document.
        """
        ...
