"""Local cart tier stored as JSON files, one per device."""

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any

from storefront.application.ports import CartStore
from storefront.domain.entities import SNAPSHOT_ERRORS, Cart
from storefront.domain.exceptions import PersistenceError
from storefront.infrastructure.config import settings

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class FileCartStore(CartStore):
    """Cart snapshots written to <directory>/<key>.json.

    Writes go to a temporary file first and are renamed into place, so a
    crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory or settings.cart_storage_dir)

    def _path(self, key: str) -> Path:
        safe = _SAFE_KEY.sub("_", key) or "_"
        return self.directory / f"{safe}.json"

    def _read(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, key: str, data: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp, path)

    async def load(self, key: str) -> Cart | None:
        try:
            data = await asyncio.to_thread(self._read, key)
        except (OSError, ValueError) as e:
            raise PersistenceError("load local cart", str(e)) from e
        if data is None:
            return None
        try:
            return Cart.from_dict(data)
        except SNAPSHOT_ERRORS as e:
            raise PersistenceError("load local cart", f"unreadable snapshot: {e}") from e

    async def save(self, key: str, cart: Cart) -> None:
        try:
            await asyncio.to_thread(self._write, key, cart.to_dict())
        except OSError as e:
            raise PersistenceError("save local cart", str(e)) from e
