from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from forgery.model.keys import TypeKey
from forgery.strategies import ForgingStrategy

STRATEGY_ENTRYPOINT_GROUP = "forgery.strategies"


class StrategyRegistry(ABC):
    """
    Keyed store of strategies.

    Entries are keyed by the type a strategy produces, or by (containing type,
    property name) for property scoped strategies. The last registration for a key
    wins; entries are never removed.
    """

    @abstractmethod
    def register(self, strategy: ForgingStrategy[Any]) -> None: ...

    @abstractmethod
    def lookup(
        self, key: TypeKey, property_name: str | None = None
    ) -> ForgingStrategy[Any] | None:
        """
        Exact lookup by type, or by (containing type, property name) when
        property_name is given. A miss returns None; it never raises.
        """

    @abstractmethod
    def strategies(self) -> tuple[ForgingStrategy[Any], ...]:
        """
        Registered strategies in registration order.
        """
