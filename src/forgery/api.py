from __future__ import annotations

import logging
from typing import Any, TypeVar, overload

from faker import Faker

from forgery.config import ForgeryConfig
from forgery.engine import Forgery
from forgery.internal.builtin_registry import InMemoryStrategyRegistry
from forgery.internal.util.strategy import load_strategies
from forgery.locator import RegistryStrategyLocator
from forgery.registry import STRATEGY_ENTRYPOINT_GROUP

BUILTIN_STRATEGY_PACKAGE = "forgery.internal.builtin_strategies"

T = TypeVar("T")


def _build_faker(config: ForgeryConfig) -> Faker:
    faker = Faker(config.locale)
    if config.seed is not None:
        faker.seed_instance(config.seed)
    return faker


# :: FeatureFlow | type=feature_start | name=engine_construction
def build_forgery(config: ForgeryConfig | None = None) -> Forgery:
    """
    Build an engine from config.

    Registration order: builtin strategies, entry point strategies, then
    ``config.strategies``. Later registrations win, so explicit strategies
    override discovered ones for the same key. Every call returns an engine with
    its own registry (unless one is supplied) and its own cache.

    Raises:
        StrategyConfigError: discovery found conflicting or broken strategies.
        DependencyUnavailableError: a strategy's wire step asked the locator for a
            type with no registered strategy.
    """
    config = config or ForgeryConfig()
    registry = config.registry or InMemoryStrategyRegistry()
    locator = config.locator or RegistryStrategyLocator(registry)

    if config.load_builtins or config.load_entrypoints:
        discovered = load_strategies(
            strategy_package=BUILTIN_STRATEGY_PACKAGE if config.load_builtins else "",
            strategy_entrypoint_group=(
                STRATEGY_ENTRYPOINT_GROUP if config.load_entrypoints else ""
            ),
            shared_kwargs={"faker": _build_faker(config)},
            disabled=config.disabled_strategies,
        )
        logging.debug(f"discovered {len(discovered)} strategies")
        for strategy in discovered:
            registry.register(strategy)

    for strategy in config.strategies:
        registry.register(strategy)

    return Forgery(registry, locator, max_depth=config.max_depth)


@overload
def forge(target: type[T], *, config: ForgeryConfig | None = None) -> T: ...


@overload
def forge(target: Any, *, config: ForgeryConfig | None = None) -> Any: ...


def forge(target: Any, *, config: ForgeryConfig | None = None) -> Any:
    """
    One-shot convenience: build an engine from config and forge a single target.
    """
    return build_forgery(config).forge(target)
