"""Configuration tools.

Tools: strata_configure_get, strata_configure_model, strata_configure_auto_embed
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from ..store.records import ModelConfig
from . import args as a
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _get(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.ConfigGet()))


def _model(session: Session, args: _JSON) -> Any:
    model = ModelConfig(
        endpoint=a.get_string(args, "endpoint"),
        model=a.get_string(args, "model"),
        api_key=a.get_optional_string(args, "api_key"),
        timeout_ms=a.get_optional_uint(args, "timeout_ms"),
    )
    return output_to_json(session.execute(cmd.ConfigureModel(model=model)))


def _auto_embed(session: Session, args: _JSON) -> Any:
    enabled = a.get_bool(args, "enabled")
    return output_to_json(session.execute(cmd.ConfigSetAutoEmbed(enabled=enabled)))


MODULE = ToolModule(
    capability="config",
    tools=(
        ToolDef(
            "strata_configure_get",
            "Get the database configuration: durability, auto_embed and the model endpoint.",
            schema(),
        ),
        ToolDef(
            "strata_configure_model",
            "Configure the model endpoint used for generation. 'endpoint' must be an http(s) "
            "URL serving an Ollama-compatible API.",
            schema(
                required={"endpoint": "string", "model": "string"},
                optional={"api_key": "string", "timeout_ms": "integer"},
            ),
        ),
        ToolDef(
            "strata_configure_auto_embed",
            "Turn automatic embedding of written text on or off. Semantic and hybrid search "
            "need it on.",
            schema(required={"enabled": "boolean"}),
        ),
    ),
    handlers={
        "strata_configure_get": _get,
        "strata_configure_model": _model,
        "strata_configure_auto_embed": _auto_embed,
    },
)
