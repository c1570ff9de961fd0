from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from forgery.model.errors import DependencyUnavailableError
from forgery.model.keys import TypeKey
from forgery.registry import StrategyRegistry
from forgery.strategies import ForgingStrategy


class StrategyLocator(ABC):
    """
    What a strategy sees during ``wire``: a way to pull other strategies, and
    nothing else of the registry or the engine.
    """

    @abstractmethod
    def resolve(self, target: Any) -> ForgingStrategy[Any]: ...


@dataclass(frozen=True, slots=True)
class RegistryStrategyLocator(StrategyLocator):
    registry: StrategyRegistry

    def resolve(self, target: Any) -> ForgingStrategy[Any]:
        key = TypeKey.of(target)
        strategy = self.registry.lookup(key)
        if strategy is None:
            raise DependencyUnavailableError(
                f"no strategy registered for dependency {key}", type_key=key
            )
        return strategy
