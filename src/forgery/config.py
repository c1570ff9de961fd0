from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypedDict

from typing_extensions import Self

from forgery.engine import DEFAULT_MAX_DEPTH
from forgery.internal.util.toml import load_toml_file
from forgery.locator import StrategyLocator
from forgery.model.errors import StrategyConfigError
from forgery.registry import StrategyRegistry
from forgery.strategies import ForgingStrategy


class ForgeryConfigMapping(TypedDict, total=False):
    """
    Plain data form of ForgeryConfig, as read from TOML.

    Strategies, registries and locators are objects and can only be supplied in
    code, so they have no keys here.
    """

    load_builtins: bool
    load_entrypoints: bool
    disabled_strategies: list[str]
    seed: int
    locale: str
    max_depth: int


@dataclass(kw_only=True, frozen=True, slots=True)
class ForgeryConfig:
    """
    Everything needed to build one engine.

    Attributes:
        strategies: explicit strategies, registered after any discovered ones and
            in the given order, so a later entry for the same key wins.
        registry: registry to populate; a fresh in-memory registry when None.
        locator: locator handed to strategies during wiring; a locator over the
            registry when None.
        load_builtins: register the builtin leaf strategies (str, int, ...).
        load_entrypoints: register strategies published under the
            ``forgery.strategies`` entry point group.
        disabled_strategies: strategy names to leave out of discovery.
        seed: seed for the shared Faker instance.
        locale: locale for the shared Faker instance.
        max_depth: recursion limit for reflective descent.
    """

    strategies: tuple[ForgingStrategy[Any], ...] = ()
    registry: StrategyRegistry | None = None
    locator: StrategyLocator | None = None
    load_builtins: bool = True
    load_entrypoints: bool = True
    disabled_strategies: frozenset[str] = field(default_factory=frozenset)
    seed: int | None = None
    locale: str | None = None
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategies", tuple(self.strategies))
        object.__setattr__(self, "disabled_strategies", frozenset(self.disabled_strategies))
        if self.max_depth < 1:
            raise StrategyConfigError(f"max_depth must be positive, got {self.max_depth}")

    def with_strategies(self, *strategies: ForgingStrategy[Any]) -> Self:
        return dataclasses.replace(self, strategies=(*self.strategies, *strategies))

    # :: MechanicalOperation | type=deserialization
    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **overrides: Any) -> Self:
        unknown = sorted(set(mapping) - set(ForgeryConfigMapping.__annotations__))
        if unknown:
            raise StrategyConfigError(f"unknown forgery config keys: {unknown}")

        kwargs: dict[str, Any] = {}
        for name in ("load_builtins", "load_entrypoints"):
            if name in mapping:
                kwargs[name] = _expect(mapping, name, bool)
        if "seed" in mapping:
            kwargs["seed"] = _expect(mapping, "seed", int)
        if "max_depth" in mapping:
            kwargs["max_depth"] = _expect(mapping, "max_depth", int)
        if "locale" in mapping:
            kwargs["locale"] = _expect(mapping, "locale", str)
        if "disabled_strategies" in mapping:
            names = _expect(mapping, "disabled_strategies", list)
            if not all(isinstance(n, str) and n for n in names):
                raise StrategyConfigError(
                    "disabled_strategies: expected a list of non empty strings"
                )
            kwargs["disabled_strategies"] = frozenset(names)

        kwargs.update(overrides)
        return cls(**kwargs)


def _expect(mapping: Mapping[str, Any], name: str, expected: type) -> Any:
    value = mapping[name]
    # bool is an int subclass; an int knob given as true/false is a mistake
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise StrategyConfigError(
            f"{name}: expected {expected.__name__}, got {type(value).__name__}"
        )
    return value


def load_config(path: str | Path, **overrides: Any) -> ForgeryConfig:
    """
    Read a ForgeryConfig from a TOML file.

    For ``pyproject.toml`` the ``[tool.forgery]`` table is used (an absent table
    means defaults); any other file is read as a whole.
    """
    path = Path(path)
    data = load_toml_file(path)
    if path.name == "pyproject.toml":
        data = data.get("tool", {}).get("forgery", {})
    if not isinstance(data, Mapping):
        raise StrategyConfigError(f"{path}: forgery config must be a table")
    return ForgeryConfig.from_mapping(data, **overrides)
