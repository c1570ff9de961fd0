from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from importlib.metadata import entry_points, EntryPoint
from typing import Any

from forgery.model.errors import StrategyConfigError
from forgery.strategies import ForgingStrategy


@dataclass(frozen=True, slots=True)
class _StrategyClassInfo:
    strategy_cls: type[ForgingStrategy[Any]]
    origin: str  # "builtin" | "entrypoint"


# --------------------------------------------------------------------------- #
# Discovery
# --------------------------------------------------------------------------- #


def _iter_module_objects(module_name: str) -> Iterable[Any]:
    """
    Yield the top level objects of a module, or of every module in a package.
    """
    if not module_name:
        return
    module = importlib.import_module(module_name)
    yield from vars(module).values()
    if not hasattr(module, "__path__"):
        return
    for _finder, mod_name, _ispkg in pkgutil.walk_packages(
        module.__path__, module.__name__ + "."
    ):
        yield from vars(importlib.import_module(mod_name)).values()


def _iter_entrypoint_objects(group: str) -> Iterable[Any]:
    if not group:
        return
    ep: EntryPoint
    for ep in entry_points().select(group=group):
        yield ep.load()


def _is_concrete_strategy(obj: Any) -> bool:
    return (
        inspect.isclass(obj)
        and issubclass(obj, ForgingStrategy)
        and not inspect.isabstract(obj)
    )


def _builtin_strategy_classes(module_name: str) -> list[type[ForgingStrategy[Any]]]:
    out: list[type[ForgingStrategy[Any]]] = []
    for obj in _iter_module_objects(module_name):
        # skip strategies a builtin module merely imports
        if _is_concrete_strategy(obj) and obj.__module__.startswith(module_name):
            out.append(obj)
    return out


def _entrypoint_strategy_classes(group: str) -> list[type[ForgingStrategy[Any]]]:
    out: list[type[ForgingStrategy[Any]]] = []
    for obj in _iter_entrypoint_objects(group):
        if not _is_concrete_strategy(obj):
            raise StrategyConfigError(
                f"entry point in group '{group}' must load a concrete ForgingStrategy subclass; "
                f"got {obj!r}"
            )
        out.append(obj)
    return out


def strategy_name_for_class(strategy_cls: type[ForgingStrategy[Any]]) -> str:
    name = getattr(strategy_cls, "strategy_name", None)
    if isinstance(name, str) and name:
        return name
    return strategy_cls.__name__


def discover_strategy_classes(
    *, strategy_package: str, strategy_entrypoint_group: str
) -> dict[str, _StrategyClassInfo]:
    """
    Returns mapping strategy_name -> class info.

    Duplicate strategy_name across builtin/entrypoint is an error.
    """
    by_name: dict[str, _StrategyClassInfo] = {}

    for cls in _builtin_strategy_classes(strategy_package):
        name = strategy_name_for_class(cls)
        if name in by_name and by_name[name].strategy_cls is not cls:
            raise StrategyConfigError(f"duplicate strategy_name discovered: '{name}'")
        by_name[name] = _StrategyClassInfo(strategy_cls=cls, origin="builtin")

    for cls in _entrypoint_strategy_classes(strategy_entrypoint_group):
        name = strategy_name_for_class(cls)
        if name in by_name:
            raise StrategyConfigError(f"duplicate strategy_name discovered: '{name}'")
        by_name[name] = _StrategyClassInfo(strategy_cls=cls, origin="entrypoint")

    return by_name


# --------------------------------------------------------------------------- #
# Instantiation
# --------------------------------------------------------------------------- #


def _accepted_kwargs(
    strategy_cls: type[ForgingStrategy[Any]], shared_kwargs: Mapping[str, Any]
) -> dict[str, Any]:
    """
    Pick the shared kwargs the strategy constructor accepts.

    If the constructor accepts **kwargs, everything is passed.
    """
    try:
        params = inspect.signature(strategy_cls).parameters.values()
    except (TypeError, ValueError):
        # no introspectable signature: call it with no arguments
        return {}
    if any(p.kind is p.VAR_KEYWORD for p in params):
        return dict(shared_kwargs)
    allowed = {
        p.name
        for p in params
        if p.kind in (p.KEYWORD_ONLY, p.POSITIONAL_OR_KEYWORD)
    }
    return {k: v for k, v in shared_kwargs.items() if k in allowed}


def instantiate_strategies(
    infos: Iterable[tuple[str, _StrategyClassInfo]], shared_kwargs: Mapping[str, Any]
) -> list[ForgingStrategy[Any]]:
    instances: list[ForgingStrategy[Any]] = []
    for name, info in infos:
        kwargs = _accepted_kwargs(info.strategy_cls, shared_kwargs)
        try:
            inst = info.strategy_cls(**kwargs)
        except Exception as e:
            raise StrategyConfigError(
                f"strategy={name} origin={info.origin}: could not instantiate: {e}"
            ) from e
        instances.append(inst)
    return instances


# --------------------------------------------------------------------------- #
# Public loader
# --------------------------------------------------------------------------- #


# :: MechanicalOperation | type=configuration
def load_strategies(
    *,
    strategy_package: str,
    strategy_entrypoint_group: str = "",
    shared_kwargs: Mapping[str, Any] | None = None,
    disabled: Collection[str] = (),
) -> list[ForgingStrategy[Any]]:
    """
    Discover -> filter -> instantiate.

    Builtins come first, then entry point strategies, each group sorted by
    strategy_name so that registration order (and so "last registration wins")
    is deterministic.
    """
    discovered = discover_strategy_classes(
        strategy_package=strategy_package,
        strategy_entrypoint_group=strategy_entrypoint_group,
    )

    unknown = sorted(set(disabled) - set(discovered))
    if unknown:
        logging.debug(f"disabled strategies not discovered: {unknown}")

    origin_rank = {"builtin": 0, "entrypoint": 1}
    ordered = sorted(
        ((name, info) for name, info in discovered.items() if name not in disabled),
        key=lambda item: (origin_rank[item[1].origin], item[0]),
    )
    return instantiate_strategies(ordered, shared_kwargs or {})
