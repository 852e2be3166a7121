"""
Lazy per-view loading

Each view moves NOT_LOADED -> LOADED exactly once per session, on its
first activation. Every activation reads the view's resources through the
client cache, so after the first load it is the cache TTL that decides
whether anything goes over the network.
"""

import threading
from enum import Enum
from typing import Callable, Iterable, Mapping

from src.core.models import ResourceKey


class ViewState(Enum):
    NOT_LOADED = "not-loaded"
    LOADED = "loaded"


class TabLoader:

    def __init__(self, views: Mapping[str, Iterable[ResourceKey]],
                 load: Callable[[Iterable[ResourceKey]], dict]):
        self.views = {name: frozenset(keys) for name, keys in views.items()}
        self._load = load
        self._states = {name: ViewState.NOT_LOADED for name in self.views}
        self._lock = threading.Lock()

    def state(self, view: str) -> ViewState:
        return self._states[view]

    def is_loaded(self, view: str) -> bool:
        return self._states.get(view) == ViewState.LOADED

    def mark_loaded(self, view: str):
        """Record a view whose resources were already loaded elsewhere (initial load)"""
        with self._lock:
            self._require(view)
            self._states[view] = ViewState.LOADED

    def _require(self, view: str):
        if view not in self.views:
            raise KeyError(f"Unknown view: {view}")

    def activate(self, view: str) -> dict:
        """Activate a view and return {ResourceKey: value} for what loaded"""
        with self._lock:
            self._require(view)
            first = self._states[view] == ViewState.NOT_LOADED
            self._states[view] = ViewState.LOADED

        keys = self.views[view]
        if first:
            print(f"[TABS] First activation of '{view}': loading {sorted(k.value for k in keys)}")
        if not keys:
            return {}
        return self._load(keys)
