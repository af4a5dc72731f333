"""Mapping between VectorDocument and Qdrant points."""

from __future__ import annotations

from typing import Any

from qdrant_client.http import models

from code_vector_store.vector.base import CollectionKind, VectorDocument
from code_vector_store.vector.hybrid import DENSE_VECTOR_NAME

# Payload keys are shared with collections written by earlier indexers.
CONTENT_KEY = "content"
RELATIVE_PATH_KEY = "relativePath"
START_LINE_KEY = "startLine"
END_LINE_KEY = "endLine"
FILE_EXTENSION_KEY = "fileExtension"
METADATA_KEY = "metadata"


def encode_payload(document: VectorDocument) -> dict[str, Any]:
    """Build the flat payload stored next to a document's vector."""
    return {
        CONTENT_KEY: document.content,
        RELATIVE_PATH_KEY: document.relative_path,
        START_LINE_KEY: document.start_line,
        END_LINE_KEY: document.end_line,
        FILE_EXTENSION_KEY: document.file_extension,
        METADATA_KEY: document.metadata,
    }


def encode_point(
    document: VectorDocument, kind: CollectionKind = CollectionKind.SIMPLE
) -> models.PointStruct:
    """Encode a document as a Qdrant point for the given collection layout."""
    vector: models.VectorStruct
    if kind is CollectionKind.HYBRID:
        vector = {DENSE_VECTOR_NAME: document.vector}
    else:
        vector = document.vector
    return models.PointStruct(
        id=document.id,
        vector=vector,
        payload=encode_payload(document),
    )


def decode_document(
    point_id: models.ExtendedPointId,
    payload: dict[str, Any] | None,
    vector: list[float],
) -> VectorDocument:
    """Rebuild a document from a point's payload.

    Missing or mistyped fields fall back to empty defaults; points written by
    older payload shapes decode to degraded documents rather than errors.

    Args:
        point_id: Point id as returned by Qdrant.
        payload: Point payload, possibly None.
        vector: Vector to attach; Qdrant does not return it with search hits.
    """
    payload = payload or {}
    return VectorDocument(
        id=str(point_id),
        vector=vector,
        content=_typed(payload, CONTENT_KEY, str, ""),
        relative_path=_typed(payload, RELATIVE_PATH_KEY, str, ""),
        start_line=_line(payload, START_LINE_KEY),
        end_line=_line(payload, END_LINE_KEY),
        file_extension=_typed(payload, FILE_EXTENSION_KEY, str, ""),
        metadata=dict(_typed(payload, METADATA_KEY, dict, {})),
    )


def project_payload(
    point_id: models.ExtendedPointId,
    payload: dict[str, Any] | None,
    output_fields: list[str],
) -> dict[str, Any]:
    """Return the point id plus the requested payload fields that are present."""
    record: dict[str, Any] = {"id": str(point_id)}
    if payload:
        for field in output_fields:
            if field in payload:
                record[field] = payload[field]
    return record


def _typed[T](payload: dict[str, Any], key: str, kind: type[T], default: T) -> T:
    value = payload.get(key)
    return value if isinstance(value, kind) else default


def _line(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return int(value)
