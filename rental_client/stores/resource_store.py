from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from rental_client.core.errors import ApiError

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class ListStore(ABC, Generic[ItemT]):
    """
    Session cache of one REST collection.

    ``load()`` replaces the list (last-issued load wins, a failure keeps the
    last good list). Mutations go through ``_optimistic``: the local change
    is applied first and undone if the server call fails.
    """

    resource_name = "items"

    def __init__(self) -> None:
        self._items: list[ItemT] = []
        self._issued_loads = 0
        self._version = 0
        self.last_error: ApiError | None = None

    @property
    def items(self) -> tuple[ItemT, ...]:
        return tuple(self._items)

    @abstractmethod
    async def _fetch(self) -> list[ItemT]:
        """Fetch the full collection from the backend."""

    async def load(self) -> tuple[ItemT, ...]:
        self._issued_loads += 1
        ticket = self._issued_loads
        try:
            items = await self._fetch()
        except ApiError as exc:
            if ticket == self._issued_loads:
                self.last_error = exc
            logger.warning("Failed to load %s: %s", self.resource_name, exc)
            raise

        if ticket == self._issued_loads:
            self._items = list(items)
            self._version += 1
            self.last_error = None
        return self.items

    async def _optimistic(
        self,
        mutate: Callable[[list[ItemT]], list[ItemT]],
        call: Callable[[], Awaitable[ResultT]],
    ) -> ResultT:
        snapshot = list(self._items)
        version = self._version
        self._items = mutate(list(self._items))
        try:
            return await call()
        except ApiError as exc:
            # A load that landed meanwhile is newer truth than our snapshot
            if version == self._version:
                self._items = snapshot
            self.last_error = exc
            logger.warning("Rolled back %s change: %s", self.resource_name, exc)
            raise

    def clear(self) -> None:
        self._issued_loads += 1
        self._version += 1
        self._items = []
        self.last_error = None
