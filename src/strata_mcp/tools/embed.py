"""Embedding tools.

Tools: strata_embed, strata_embed_batch, strata_embed_status
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from . import args as a
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _embed(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.Embed(text=a.get_string(args, "text"))))


def _embed_batch(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.EmbedBatch(texts=a.get_string_list(args, "texts"))))


def _status(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.EmbedStatus()))


MODULE = ToolModule(
    capability="embed",
    tools=(
        ToolDef(
            "strata_embed",
            "Embed one text into a vector. Requires auto-embed.",
            schema(required={"text": "string"}),
        ),
        ToolDef(
            "strata_embed_batch",
            "Embed several texts at once. Returns one vector per text, in order.",
            schema(required={"texts": "array_string"}),
        ),
        ToolDef(
            "strata_embed_status",
            "Report the embedding pipeline: auto_embed, queue counters and whether it is idle.",
            schema(),
        ),
    ),
    handlers={
        "strata_embed": _embed,
        "strata_embed_batch": _embed_batch,
        "strata_embed_status": _status,
    },
)
