"""Inference tools.

Tools: strata_generate, strata_tokenize, strata_detokenize, strata_generate_unload

Generation is forwarded to the configured model endpoint; see
strata_configure_model.
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from . import args as a
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _generate(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.Generate(
            model=a.get_string(args, "model"),
            prompt=a.get_string(args, "prompt"),
            max_tokens=a.get_optional_uint(args, "max_tokens"),
            temperature=a.get_optional_number(args, "temperature"),
            top_k=a.get_optional_uint(args, "top_k"),
            top_p=a.get_optional_number(args, "top_p"),
            seed=a.get_optional_uint(args, "seed"),
            stop_tokens=a.get_optional_uint_list(args, "stop_tokens"),
        )
    )
    return output_to_json(output)


def _tokenize(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.Tokenize(
            model=a.get_string(args, "model"),
            text=a.get_string(args, "text"),
            add_special_tokens=a.get_optional_bool(args, "add_special_tokens"),
        )
    )
    return output_to_json(output)


def _detokenize(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.Detokenize(model=a.get_string(args, "model"), ids=a.get_uint_list(args, "ids"))
    )
    return output_to_json(output)


def _unload(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.GenerateUnload(model=a.get_string(args, "model"))))


MODULE = ToolModule(
    capability="inference",
    tools=(
        ToolDef(
            "strata_generate",
            "Generate text from a prompt with the configured model endpoint. Returns "
            "{ text, stop_reason, prompt_tokens, completion_tokens, model }.",
            schema(
                required={"model": "string", "prompt": "string"},
                optional={
                    "max_tokens": "integer",
                    "temperature": "number",
                    "top_k": "integer",
                    "top_p": "number",
                    "seed": "integer",
                    "stop_tokens": "array_number",
                },
            ),
        ),
        ToolDef(
            "strata_tokenize",
            "Convert text into token ids. Returns { ids, count, model }.",
            schema(
                required={"model": "string", "text": "string"},
                optional={"add_special_tokens": "boolean"},
            ),
        ),
        ToolDef(
            "strata_detokenize",
            "Convert token ids back into text. Returns { text }.",
            schema(required={"model": "string", "ids": "array_number"}),
        ),
        ToolDef(
            "strata_generate_unload",
            "Release a loaded generation model. Returns true if it was loaded.",
            schema(required={"model": "string"}),
        ),
    ),
    handlers={
        "strata_generate": _generate,
        "strata_tokenize": _tokenize,
        "strata_detokenize": _detokenize,
        "strata_generate_unload": _unload,
    },
)
