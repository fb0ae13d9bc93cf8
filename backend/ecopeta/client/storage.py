import json
import threading
from pathlib import Path
from typing import Any, Optional

TOKEN_KEY = "token"
USER_KEY = "user"


class MemoryStorage:
    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._items: dict[str, Any] = dict(initial or {})

    def get_item(self, key: str) -> Any:
        return self._items.get(key)

    def set_item(self, key: str, value: Any) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()


class LocalStorage(MemoryStorage):
    """Key/value store persisted as one JSON document on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        super().__init__(self._load())

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._items, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(self.path)

    def set_item(self, key: str, value: Any) -> None:
        with self._lock:
            super().set_item(key, value)
            self._flush()

    def remove_item(self, key: str) -> None:
        with self._lock:
            super().remove_item(key)
            self._flush()

    def clear(self) -> None:
        with self._lock:
            super().clear()
            self._flush()
