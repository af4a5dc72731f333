"""Hybrid search orchestration over named vector fields.

Only the dense path is implemented by the Qdrant adapter. Sparse retrieval
(e.g. BM25 term vectors) plugs in through ``SparseRetriever``, and rankings
from several fields are merged by a ``FusionPolicy``. Without a sparse
retriever, non-dense requests are ignored and the dense ranking is returned
as-is.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from code_vector_store.vector.base import (
    HybridSearchOptions,
    HybridSearchRequest,
    VectorSearchResult,
)
from code_vector_store.vector.errors import InvalidRequestError

logger = logging.getLogger(__name__)

DENSE_FIELD = "vector"
DENSE_VECTOR_NAME = "dense"
SPARSE_FIELD = "sparse"
DEFAULT_LIMIT = 10
_DEFAULT_RRF_K = 60

DenseSearch = Callable[[str, list[float], int], Awaitable[list[VectorSearchResult]]]


class SparseRetriever(ABC):
    """Extension point for searching a non-dense vector field."""

    @abstractmethod
    async def search(
        self,
        collection_name: str,
        request: HybridSearchRequest,
        limit: int,
    ) -> list[VectorSearchResult]:
        """Return results for one non-dense request, best first."""
        ...


class FusionPolicy(ABC):
    """Merges per-field rankings into a single ranking."""

    @abstractmethod
    def fuse(
        self,
        rankings: Sequence[tuple[str, list[VectorSearchResult]]],
        limit: int,
    ) -> list[VectorSearchResult]:
        """Fuse rankings given as (field name, results best first) pairs."""
        ...


class ReciprocalRankFusion(FusionPolicy):
    """Reciprocal-rank fusion.

    Each field's results are normalized to their rank, a document scores
    ``sum(weight / (k + rank))`` over the fields that returned it, and ties
    break on document id ascending.
    """

    def __init__(self, k: int = _DEFAULT_RRF_K, weights: dict[str, float] | None = None):
        if k <= 0:
            raise ValueError("RRF k must be positive.")
        self._k = k
        self._weights = weights or {}

    def fuse(
        self,
        rankings: Sequence[tuple[str, list[VectorSearchResult]]],
        limit: int,
    ) -> list[VectorSearchResult]:
        fused: dict[str, dict[str, Any]] = {}
        for field_name, results in rankings:
            weight = self._weights.get(field_name, 1.0)
            for rank, result in enumerate(results, start=1):
                doc_id = result.document.id
                candidate = fused.setdefault(
                    doc_id,
                    {"score": 0.0, "best_rank": rank, "document": result.document},
                )
                candidate["score"] += weight / (self._k + rank)
                if rank < candidate["best_rank"]:
                    candidate["best_rank"] = rank
                    candidate["document"] = result.document

        ordered = sorted(fused.items(), key=lambda item: (-item[1]["score"], item[0]))
        return [
            VectorSearchResult(document=data["document"], score=data["score"])
            for _, data in ordered[:limit]
        ]


@dataclass
class HybridSearchPlan:
    """Validated hybrid search: the dense query plus any other field requests."""

    dense_vector: list[float]
    limit: int
    extra_requests: list[HybridSearchRequest] = field(default_factory=list)


class HybridSearchOrchestrator:
    """Coordinates one dense search with optional sparse extensions."""

    def __init__(
        self,
        dense_search: DenseSearch,
        sparse_retriever: SparseRetriever | None = None,
        fusion: FusionPolicy | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            dense_search: Coroutine ``(collection, vector, limit)`` searching
                the named dense vector.
            sparse_retriever: Optional retriever for non-dense requests.
            fusion: Fusion policy used when a sparse retriever is installed.
                Defaults to reciprocal-rank fusion.
        """
        self._dense_search = dense_search
        self._sparse_retriever = sparse_retriever
        self._fusion = fusion or ReciprocalRankFusion()

    def plan(
        self,
        requests: list[HybridSearchRequest],
        options: HybridSearchOptions | None = None,
    ) -> HybridSearchPlan:
        """Validate requests and resolve the result limit.

        Raises:
            InvalidRequestError: If no usable dense request is present.
        """
        dense_request = next(
            (request for request in requests if request.anns_field == DENSE_FIELD),
            None,
        )
        if dense_request is None:
            raise InvalidRequestError(
                "Dense vector search request required for hybrid search"
            )
        if not _is_numeric_vector(dense_request.data):
            raise InvalidRequestError(
                "Dense vector search request must carry a list of floats"
            )

        limit = (
            (options.limit if options else None)
            or requests[0].limit
            or DEFAULT_LIMIT
        )
        if limit <= 0:
            raise InvalidRequestError(f"Hybrid search limit must be positive: {limit}")

        return HybridSearchPlan(
            dense_vector=[float(value) for value in dense_request.data],
            limit=limit,
            extra_requests=[
                request for request in requests if request is not dense_request
            ],
        )

    async def run(
        self,
        collection_name: str,
        requests: list[HybridSearchRequest],
        options: HybridSearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        """Plan and execute a hybrid search."""
        plan = self.plan(requests, options)
        dense_results = await self._dense_search(
            collection_name, plan.dense_vector, plan.limit
        )

        if not plan.extra_requests:
            return dense_results
        if self._sparse_retriever is None:
            logger.debug(
                "Ignoring %d non-dense hybrid request(s) on %s; sparse search "
                "is not enabled",
                len(plan.extra_requests),
                collection_name,
            )
            return dense_results

        rankings: list[tuple[str, list[VectorSearchResult]]] = [
            (DENSE_FIELD, dense_results)
        ]
        for request in plan.extra_requests:
            results = await self._sparse_retriever.search(
                collection_name, request, plan.limit
            )
            rankings.append((request.anns_field, results))
        return self._fusion.fuse(rankings, plan.limit)


def _is_numeric_vector(data: object) -> bool:
    if not isinstance(data, list | tuple) or not data:
        return False
    return all(
        isinstance(value, int | float) and not isinstance(value, bool)
        for value in data
    )
