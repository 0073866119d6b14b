import time
from collections import OrderedDict
from typing import Callable, Hashable, Optional

from wifimap.schemas.network import GeoBounds


class ViewportCache:
    """
    Короткоживущий кэш запросов по bounding box (панорамирование карты
    повторяет одни и те же запросы). Ключ: округлённые границы + limit/offset.
    При переполнении вытесняется самая старая запись.
    """

    def __init__(
        self,
        ttl: float = 5.0,
        max_entries: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, tuple[float, list]]" = OrderedDict()

    @staticmethod
    def make_key(bounds: GeoBounds, limit: int, offset: int) -> tuple:
        return (
            round(bounds.north, 4),
            round(bounds.south, 4),
            round(bounds.east, 4),
            round(bounds.west, 4),
            limit,
            offset,
        )

    def get(self, key: Hashable) -> Optional[list]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, data = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return data

    def put(self, key: Hashable, data: list) -> None:
        # Перезапись ключа считается новой вставкой
        self._entries.pop(key, None)
        self._entries[key] = (self._clock(), data)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
