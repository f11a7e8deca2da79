"""Model registry and local model directory.

The registry is a fixed catalogue. Pulling a model records a JSON manifest in
the models directory; a model is "local" once its manifest exists.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, replace
from datetime import UTC, datetime
from pathlib import Path

from ..errors import StoreError
from .records import ModelInfo

logger = logging.getLogger(__name__)

MODEL_CATALOG: tuple[ModelInfo, ...] = (
    ModelInfo(
        name="miniLM",
        task="embed",
        architecture="bert",
        default_quant="f16",
        embedding_dim=384,
        is_local=False,
        size_bytes=90_868_376,
    ),
    ModelInfo(
        name="nomic-embed",
        task="embed",
        architecture="nomic_bert",
        default_quant="f16",
        embedding_dim=768,
        is_local=False,
        size_bytes=274_290_560,
    ),
    ModelInfo(
        name="qwen3:1.7b",
        task="generate",
        architecture="qwen3",
        default_quant="q4_k_m",
        embedding_dim=None,
        is_local=False,
        size_bytes=1_107_409_152,
    ),
    ModelInfo(
        name="llama3.2:3b",
        task="generate",
        architecture="llama",
        default_quant="q4_k_m",
        embedding_dim=None,
        is_local=False,
        size_bytes=2_019_393_189,
    ),
)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def find_model(name: str) -> ModelInfo | None:
    for info in MODEL_CATALOG:
        if info.name == name:
            return info
    return None


class ModelDirectory:
    """Manifests of pulled models, one ``<name>.json`` file each."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def manifest_path(self, name: str) -> Path:
        return self.root / f"{_UNSAFE.sub('_', name)}.json"

    def is_local(self, name: str) -> bool:
        return self.manifest_path(name).is_file()

    def pull(self, info: ModelInfo) -> Path:
        """Record ``info`` as pulled and return the manifest path.

        Raises:
            StoreError: IO_ERROR if the manifest cannot be written.
        """
        path = self.manifest_path(info.name)
        manifest = asdict(replace(info, is_local=True))
        manifest["pulled_at"] = datetime.now(UTC).isoformat()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        except OSError as e:
            raise StoreError("IO_ERROR", f"Failed to write model manifest {path}: {e}") from e
        logger.info("Pulled model %s to %s", info.name, path)
        return path

    def local(self) -> list[ModelInfo]:
        return [replace(info, is_local=True) for info in MODEL_CATALOG if self.is_local(info.name)]
