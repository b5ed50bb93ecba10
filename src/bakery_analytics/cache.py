"""File-backed storage for pipeline outputs."""
import json
import re
from pathlib import Path
from typing import Generic, Type, TypeVar

from pydantic import BaseModel

T = TypeVar('T', bound=BaseModel)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class FileCache(Generic[T]):
    """Simple file-based cache of pydantic models, one JSON file per key."""

    def __init__(self, cache_dir: Path, model: Type[T]):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.model = model

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{_UNSAFE.sub('_', key)}.json"

    def get(self, key: str) -> T | None:
        """Get cached item, returning None if not found."""
        cache_file = self._path(key)
        if cache_file.exists():
            return self.model.model_validate_json(cache_file.read_text(encoding="utf-8"))
        return None

    def save(self, key: str, value: T) -> None:
        self._path(key).write_text(value.model_dump_json(indent=2), encoding="utf-8")

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def read_json(self, key: str, default=None):
        """Read a raw JSON document stored next to the models."""
        cache_file = self._path(key)
        if cache_file.exists():
            return json.loads(cache_file.read_text(encoding="utf-8"))
        return default

    def write_json(self, key: str, value) -> None:
        self._path(key).write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")
