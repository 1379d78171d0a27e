"""Single-flight-Cache für Seitenabrufe innerhalb einer einzelnen Client-Operation.

Eine Instanz lebt genau so lange wie der Aufrufbaum, der sie erzeugt hat;
sie wird nie prozessweit geteilt. Fehler werden nicht gecacht.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Dict, Hashable, Mapping, Optional, Tuple, Union

from .errors import OperationCancelled
from .fetcher import PageResult

log = logging.getLogger(__name__)

CacheKey = Tuple[str, str, Tuple[Tuple[str, str], ...]]


def make_cache_key(path: str, params: Optional[Mapping[str, Union[str, int]]] = None,
                   operation: str = "GET") -> CacheKey:
    items = tuple(sorted((str(k), str(v)) for k, v in (params or {}).items()))
    return operation.upper(), path.strip("/"), items


class ResponseCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, Future] = {}
        self.fetch_count = 0

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for f in self._entries.values() if f.done())

    def get_or_fetch(self, key: Hashable, fetch_fn: Callable[[], PageResult]) -> PageResult:
        while True:
            with self._lock:
                fut = self._entries.get(key)
                owner = fut is None
                if owner:
                    fut = Future()
                    self._entries[key] = fut
                    self.fetch_count += 1

            if owner:
                try:
                    result = fetch_fn()
                except BaseException as e:
                    with self._lock:
                        self._entries.pop(key, None)
                    fut.set_exception(e)
                    raise
                fut.set_result(result)
                return result

            try:
                return fut.result()
            except OperationCancelled:
                # Abbruch des Besitzers betrifft nicht die wartenden Aufrufer
                log.debug(f"Cache: Besitzer von {key} abgebrochen, erneuter Versuch")
                continue
