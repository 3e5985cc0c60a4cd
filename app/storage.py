"""
Result file storage.

Objects are addressed by a slash-separated key and kept under ``RESULTS_DIR``.
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from app.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

_SAFE_PART = re.compile(r"[^A-Za-z0-9._-]+")


def result_key(user_id: str, batch_id: str) -> str:
    parts = [_SAFE_PART.sub("_", p) for p in (user_id, batch_id)]
    return f"{parts[0]}/{parts[1]}/resultado.xlsx"


class ResultStorage:
    def __init__(self, root: str):
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root.resolve() not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def save(self, key: str, data: bytes) -> str:
        """Write ``data`` under ``key`` (overwriting) and return the key."""
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".part")
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as exc:
            logger.error("Failed to store %s: %s", key, exc)
            raise StorageError(f"Erro ao salvar resultado: {exc}") from exc
        logger.info("Stored %s (%d bytes)", key, len(data))
        return key

    def load(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("Arquivo de resultado não encontrado")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Erro ao ler resultado: {exc}") from exc
