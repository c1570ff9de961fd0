from __future__ import annotations

import logging
import threading
from typing import Any

from forgery.model.keys import TypeKey
from forgery.registry import StrategyRegistry
from forgery.strategies import ForgingStrategy


class InMemoryStrategyRegistry(StrategyRegistry):
    """
    Dict backed registry for a single engine.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_type: dict[TypeKey, ForgingStrategy[Any]] = {}
        self._by_property: dict[tuple[TypeKey, str], ForgingStrategy[Any]] = {}
        self._ordered: list[ForgingStrategy[Any]] = []

    def register(self, strategy: ForgingStrategy[Any]) -> None:
        scope = strategy.scope()
        with self._lock:
            if scope is not None:
                replaced = self._by_property.get(scope)
                self._by_property[scope] = strategy
                logging.debug(
                    f"registered strategy {type(strategy).__name__} for property {scope[0]}.{scope[1]}"
                )
            else:
                key = strategy.target_key()
                replaced = self._by_type.get(key)
                self._by_type[key] = strategy
                logging.debug(f"registered strategy {type(strategy).__name__} for {key}")

            if replaced is not None and replaced is not strategy:
                self._ordered.remove(replaced)
            if replaced is not strategy:
                self._ordered.append(strategy)

    def lookup(
        self, key: TypeKey, property_name: str | None = None
    ) -> ForgingStrategy[Any] | None:
        with self._lock:
            if property_name is None:
                return self._by_type.get(key)
            return self._by_property.get((key, property_name))

    def strategies(self) -> tuple[ForgingStrategy[Any], ...]:
        with self._lock:
            return tuple(self._ordered)
