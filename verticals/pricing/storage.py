"""JSON file rule storage.

One file per tenant under `rules_dir`. Writes go to a temp file in the same
directory, are fsync'ed, then atomically replace the target, so a crash
never leaves a half-written rule list. Disk I/O runs in a worker thread to
keep the event loop free.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Sequence

from core.errors import InvalidInput, log_exception
from patterns.rules_engine import PriceRule

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
_SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")


def rules_path(rules_dir: str | Path, tenant_id: str) -> Path:
    """File for a tenant; the id is sanitised so it cannot escape the dir."""
    safe = _SAFE_NAME.sub("_", tenant_id) or "default"
    return Path(rules_dir) / f"{safe}.json"


def write_json_atomic(path: Path, data: Any) -> None:
    """Atomically write JSON to disk with fsync on the file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


class JsonFileRuleStorage:
    """RuleStorage backed by a JSON document: {"version": 1, "rules": [...]}."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> list[PriceRule]:
        return await asyncio.to_thread(self._read)

    async def save(self, rules: Sequence[PriceRule]) -> None:
        document = {"version": FORMAT_VERSION, "rules": [r.to_dict() for r in rules]}
        try:
            await asyncio.to_thread(write_json_atomic, self.path, document)
        except OSError as exc:
            log_exception(logger, "Rule save failed", extra={"path": self.path}, exc=exc)
            raise

    def _read(self) -> list[PriceRule]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            try:
                document = json.load(f)
            except json.JSONDecodeError as exc:
                raise InvalidInput(f"Rule file {self.path} is not valid JSON") from exc

        # Bare lists are accepted for files written by hand
        items = document.get("rules", []) if isinstance(document, dict) else document
        if not isinstance(items, list):
            raise InvalidInput(f"Rule file {self.path} has no rule list")
        return [PriceRule.from_dict(item) for item in items]
