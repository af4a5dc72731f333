"""Vector database adapters and interfaces."""

from code_vector_store.vector.base import (
    CollectionKind,
    HybridSearchOptions,
    HybridSearchRequest,
    SearchOptions,
    VectorDatabase,
    VectorDocument,
    VectorSearchResult,
)
from code_vector_store.vector.connection import QdrantConnectionConfig
from code_vector_store.vector.errors import (
    BackendError,
    FilterSyntaxError,
    InvalidRequestError,
    NotInitializedError,
    VectorDatabaseError,
)
from code_vector_store.vector.hybrid import (
    FusionPolicy,
    ReciprocalRankFusion,
    SparseRetriever,
)
from code_vector_store.vector.qdrant_client import QdrantVectorDatabase

__all__ = [
    "BackendError",
    "CollectionKind",
    "FilterSyntaxError",
    "FusionPolicy",
    "HybridSearchOptions",
    "HybridSearchRequest",
    "InvalidRequestError",
    "NotInitializedError",
    "QdrantConnectionConfig",
    "QdrantVectorDatabase",
    "ReciprocalRankFusion",
    "SearchOptions",
    "SparseRetriever",
    "VectorDatabase",
    "VectorDatabaseError",
    "VectorDocument",
    "VectorSearchResult",
]
