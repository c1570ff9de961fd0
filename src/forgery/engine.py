from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TypeVar, overload

from forgery.internal.reflection import ReflectiveStrategy
from forgery.locator import RegistryStrategyLocator, StrategyLocator
from forgery.model.errors import CyclicGraphError, ForgeryPreconditionError
from forgery.model.keys import NULL_TARGET_MESSAGE, TypeKey
from forgery.registry import StrategyRegistry
from forgery.strategies import ForgingStrategy

T = TypeVar("T")

DEFAULT_MAX_DEPTH = 64


class Forgery:
    """
    Forges populated instances of arbitrary types.

    Resolution order for a type, first match wins:
      1. this engine's cache
      2. an exact registry match
      3. a synthesized ReflectiveStrategy

    Resolving, wiring and caching a strategy is one atomic step, so every type
    resolves to exactly one strategy for the lifetime of the engine. The cache holds
    strategies, not values: each forge() call asks the strategy for a fresh value.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        locator: StrategyLocator | None = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        if max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        self._registry = registry
        self._locator = locator or RegistryStrategyLocator(registry)
        self._max_depth = max_depth
        self._lock = threading.RLock()
        self._cache: dict[TypeKey, ForgingStrategy[Any]] = {}
        # holds the wired strategies themselves so an id is never reused while tracked
        self._wired: dict[int, ForgingStrategy[Any]] = {}
        self._local = threading.local()

        for strategy in registry.strategies():
            self._ensure_wired(strategy)

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    @property
    def locator(self) -> StrategyLocator:
        return self._locator

    @overload
    def forge(self, target: type[T]) -> T: ...

    @overload
    def forge(self, target: Any) -> Any: ...

    def forge(self, target: Any) -> Any:
        if target is None:
            raise ForgeryPreconditionError(NULL_TARGET_MESSAGE)
        key = TypeKey.of(target)
        strategy = self.resolve(key)
        with self._descend(key):
            return strategy.forge()

    # :: MechanicalOperation | type=resolution
    def resolve(self, target: Any) -> ForgingStrategy[Any]:
        """
        Return the strategy this engine uses for target, resolving it on first use.
        """
        key = TypeKey.of(target)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

            strategy = self._registry.lookup(key)
            if strategy is None:
                logging.debug(f"no strategy registered for {key}; synthesizing reflective strategy")
                strategy = ReflectiveStrategy(key=key, forgery=self)
            else:
                logging.debug(f"using registered strategy {type(strategy).__name__} for {key}")

            self._ensure_wired(strategy)
            self._cache[key] = strategy
            return strategy

    def property_strategy(self, owner: TypeKey, name: str) -> ForgingStrategy[Any] | None:
        """
        Find a strategy scoped to property name of owner.

        The owner key itself is tried first, then every class in the owner's MRO, so
        a strategy scoped to a base class (or to object, meaning any type) applies to
        subclasses too.
        """
        candidates = [owner]
        runtime_type = owner.runtime_type
        if isinstance(runtime_type, type):
            candidates.extend(TypeKey.of(klass) for klass in runtime_type.__mro__)

        for candidate in candidates:
            strategy = self._registry.lookup(candidate, name)
            if strategy is not None:
                logging.debug(
                    f"property override {type(strategy).__name__} for {owner}.{name} (scope {candidate})"
                )
                self._ensure_wired(strategy)
                return strategy
        return None

    def _ensure_wired(self, strategy: ForgingStrategy[Any]) -> None:
        with self._lock:
            marker = id(strategy)
            if marker in self._wired:
                return
            strategy.wire(self._locator)
            self._wired[marker] = strategy

    @contextmanager
    def _descend(self, key: TypeKey) -> Iterator[None]:
        stack: list[TypeKey] = getattr(self._local, "stack", None) or []
        self._local.stack = stack

        if key in stack:
            path = [*stack, key]
            raise CyclicGraphError(
                f"cyclic type graph: {' -> '.join(str(k) for k in path)}", path=path
            )
        if len(stack) >= self._max_depth:
            raise CyclicGraphError(
                f"type graph deeper than {self._max_depth} levels while forging {key}",
                path=[*stack, key],
            )

        stack.append(key)
        try:
            yield
        finally:
            stack.pop()
