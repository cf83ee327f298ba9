from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

"""Local skin library.

Skins are copied into ``{data_dir}/skins/<id>.png`` and indexed through the
storage collaborator under ``skin_library``.  Items are independent of any
account; ids are unique, names may repeat.
"""

import asyncio
import logging
import uuid
from pathlib import Path

import httpx
from pydantic import ValidationError as PydanticValidationError

from lodestone.exceptions import (
    LibraryItemNotFoundError,
    StorageFailedError,
    ValidationError,
)
from lodestone.skins.models import LibraryItem, SkinVariant
from lodestone.storage import KeyValueStore

logger = logging.getLogger("lodestone.skins.library")

STORAGE_KEY = "skin_library"


def is_remote_source(source: str | Path) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


class SkinLibrary:
    def __init__(
        self,
        storage: KeyValueStore,
        skins_dir: Path,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._storage = storage
        self._skins_dir = skins_dir
        self._timeout = timeout
        self._transport = transport
        self._items: list[LibraryItem] = self._load()

    def _load(self) -> list[LibraryItem]:
        items: list[LibraryItem] = []
        for raw in self._storage.load(STORAGE_KEY) or []:
            try:
                items.append(LibraryItem.model_validate(raw))
            except PydanticValidationError as exc:
                logger.warning("Skipping malformed library entry: %s", exc)
        return items

    def list(self) -> list[LibraryItem]:
        return list(self._items)

    def get(self, item_id: str) -> LibraryItem:
        for item in self._items:
            if item.id == item_id:
                return item
        raise LibraryItemNotFoundError(f"Library item '{item_id}' not found")

    def path_for(self, item: LibraryItem) -> Path:
        return self._skins_dir / item.stored_file

    async def add(
        self,
        name: str,
        source: str | Path,
        variant: SkinVariant | str = SkinVariant.CLASSIC,
    ) -> LibraryItem:
        """Copy *source* (local path or http(s) URL) into the library.

        Raises:
            ValidationError: *name* is blank or *source* cannot be read.
            StorageFailedError: The index could not be persisted; the copied
                file is removed again.
        """
        name = name.strip()
        if not name:
            raise ValidationError("Please enter a name for the skin")
        data = await self._read_source(source)

        item_id = uuid.uuid4().hex
        item = LibraryItem(
            id=item_id,
            name=name,
            variant=SkinVariant.parse(variant),
            stored_file=f"{item_id}.png",
        )
        target = self.path_for(item)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_file, target, data)
        except OSError as exc:
            raise StorageFailedError(f"Failed to store skin file: {exc}") from exc

        items = [*self._items, item]
        try:
            self._persist(items)
        except StorageFailedError:
            target.unlink(missing_ok=True)
            raise
        self._items = items
        logger.info("Saved '%s' to skin library as %s", name, item_id)
        return item

    def delete(self, item_id: str) -> LibraryItem:
        item = self.get(item_id)
        items = [i for i in self._items if i.id != item_id]
        self._persist(items)
        self._items = items
        self.path_for(item).unlink(missing_ok=True)
        logger.info("Deleted '%s' from skin library", item.name)
        return item

    def _write_file(self, target: Path, data: bytes) -> None:
        self._skins_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def _persist(self, items: list[LibraryItem]) -> None:
        self._storage.persist(STORAGE_KEY, [i.model_dump(mode="json") for i in items])

    async def _read_source(self, source: str | Path) -> bytes:
        if is_remote_source(source):
            try:
                async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                    resp = await client.get(str(source))
                    resp.raise_for_status()
            except httpx.HTTPError as exc:
                raise ValidationError(f"Could not download skin from {source}: {exc}") from exc
            return resp.content
        path = Path(source)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, path.read_bytes)
        except OSError as exc:
            raise ValidationError(f"Could not read skin file {path}: {exc}") from exc
