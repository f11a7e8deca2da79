"""Vector collection tools.

Tools: strata_vector_create_collection, strata_vector_delete_collection,
strata_vector_list_collections, strata_vector_upsert, strata_vector_get,
strata_vector_delete, strata_vector_search
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..errors import InvalidArgError
from ..session import Session
from ..store import commands as cmd
from ..store.records import VectorMetric
from . import args as a
from ._base import ToolDef, ToolModule, schema, version_or_json

_JSON = dict[str, Any]

DEFAULT_K = 10


def _parse_metric(raw: str | None) -> VectorMetric:
    if raw is None:
        return VectorMetric.COSINE
    try:
        return VectorMetric(raw.lower())
    except ValueError:
        raise InvalidArgError("metric", "Expected 'cosine', 'euclidean' or 'dotproduct'") from None


def _create_collection(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.VectorCreateCollection(
            branch=session.branch_id(),
            space=session.space_id(),
            collection=a.get_string(args, "collection"),
            dimension=a.get_uint(args, "dimension"),
            metric=_parse_metric(a.get_optional_string(args, "metric")),
        )
    )
    return output_to_json(output)


def _delete_collection(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.VectorDeleteCollection(
            branch=session.branch_id(),
            space=session.space_id(),
            collection=a.get_string(args, "collection"),
        )
    )
    return output_to_json(output)


def _list_collections(session: Session, args: _JSON) -> Any:
    output = session.execute(cmd.VectorListCollections(branch=session.branch_id(), space=session.space_id()))
    return output_to_json(output)


def _upsert(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.VectorUpsert(
            branch=session.branch_id(),
            space=session.space_id(),
            collection=a.get_string(args, "collection"),
            key=a.get_string(args, "key"),
            vector=a.get_vector(args, "vector"),
            metadata=a.get_optional_value(args, "metadata"),
        )
    )
    return version_or_json(output)


def _get(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.VectorGet(
            branch=session.branch_id(),
            space=session.space_id(),
            collection=a.get_string(args, "collection"),
            key=a.get_string(args, "key"),
        )
    )
    return output_to_json(output)


def _delete(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.VectorDelete(
            branch=session.branch_id(),
            space=session.space_id(),
            collection=a.get_string(args, "collection"),
            key=a.get_string(args, "key"),
        )
    )
    return output_to_json(output)


def _search(session: Session, args: _JSON) -> Any:
    k = a.get_optional_uint(args, "k")
    output = session.execute(
        cmd.VectorSearch(
            branch=session.branch_id(),
            space=session.space_id(),
            collection=a.get_string(args, "collection"),
            query=a.get_vector(args, "query"),
            k=DEFAULT_K if k is None else k,
        )
    )
    return output_to_json(output)


MODULE = ToolModule(
    capability="vector",
    tools=(
        ToolDef(
            "strata_vector_create_collection",
            "Create a vector collection with a fixed dimension. 'metric' is 'cosine' "
            "(default), 'euclidean' or 'dotproduct'.",
            schema(
                required={"collection": "string", "dimension": "integer"},
                optional={"metric": "string"},
            ),
        ),
        ToolDef(
            "strata_vector_delete_collection",
            "Delete a vector collection. Returns true if it existed.",
            schema(required={"collection": "string"}),
        ),
        ToolDef(
            "strata_vector_list_collections",
            "List vector collections with their dimension, metric and entry count.",
            schema(),
        ),
        ToolDef(
            "strata_vector_upsert",
            "Insert or replace a vector, with optional JSON metadata. Returns { version }.",
            schema(
                required={"collection": "string", "key": "string", "vector": "array_number"},
                optional={"metadata": "any"},
            ),
        ),
        ToolDef(
            "strata_vector_get",
            "Get a vector with its metadata, or null.",
            schema(required={"collection": "string", "key": "string"}),
        ),
        ToolDef(
            "strata_vector_delete",
            "Delete a vector. Returns true if it existed.",
            schema(required={"collection": "string", "key": "string"}),
        ),
        ToolDef(
            "strata_vector_search",
            "Find the 'k' nearest vectors to 'query' (default 10). Higher scores are closer.",
            schema(
                required={"collection": "string", "query": "array_number"},
                optional={"k": "integer"},
            ),
        ),
    ),
    handlers={
        "strata_vector_create_collection": _create_collection,
        "strata_vector_delete_collection": _delete_collection,
        "strata_vector_list_collections": _list_collections,
        "strata_vector_upsert": _upsert,
        "strata_vector_get": _get,
        "strata_vector_delete": _delete,
        "strata_vector_search": _search,
    },
)
