from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class StateStore:
    """Owns the single in-memory application document.

    Every change goes through :meth:`apply` or :meth:`replace`; both commit a
    new snapshot object and then notify listeners with it. Snapshots handed out
    are never mutated afterwards.
    """

    def __init__(self, initial: Dict[str, Any]):
        self._snapshot = copy.deepcopy(initial)
        self._listeners: List[Listener] = []

    @property
    def snapshot(self) -> Dict[str, Any]:
        return self._snapshot

    def apply(self, transform, *args, **kwargs) -> Dict[str, Any]:
        draft = copy.deepcopy(self._snapshot)
        result = transform(draft, *args, **kwargs)
        committed = draft if result is None else result
        self._commit(committed)
        return committed

    def replace(self, document: Dict[str, Any]) -> Dict[str, Any]:
        committed = copy.deepcopy(document)
        self._commit(committed)
        return committed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(self, document: Dict[str, Any]) -> None:
        self._snapshot = document
        for listener in list(self._listeners):
            try:
                listener(document)
            except Exception:
                logger.exception("State listener %r failed", listener)
