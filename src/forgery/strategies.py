from __future__ import annotations

import typing
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from forgery.model.errors import StrategyConfigError
from forgery.model.keys import TypeKey

if TYPE_CHECKING:
    from forgery.locator import StrategyLocator

T = TypeVar("T")


def _inferred_target(strategy_cls: type) -> Any | None:
    """
    Find T in the nearest ``ForgingStrategy[T]`` style base of strategy_cls.
    """
    for klass in strategy_cls.__mro__:
        for base in klass.__dict__.get("__orig_bases__", ()):
            origin = typing.get_origin(base)
            if not (isinstance(origin, type) and issubclass(origin, ForgingStrategy)):
                continue
            args = typing.get_args(base)
            if args and not isinstance(args[0], TypeVar):
                return args[0]
    return None


class ForgingStrategy(Generic[T], ABC):
    """
    Produces values of one target type.

    The target is taken from ``target_type`` when set, otherwise from the generic
    base, so ``class Names(ForgingStrategy[list[str]])`` forges ``list[str]``.

    Setting ``property_name`` scopes the strategy to one property of
    ``containing_type`` instead of every use of the target type. Without a
    ``containing_type`` the property is matched on any type.

    Lifecycle: construct, then ``wire`` exactly once with a locator, then
    ``forge`` any number of times.
    """

    strategy_name: ClassVar[str | None] = None
    target_type: ClassVar[Any] = None
    containing_type: ClassVar[type | None] = None
    property_name: ClassVar[str | None] = None

    @abstractmethod
    def forge(self) -> T:
        raise NotImplementedError

    def wire(self, locator: StrategyLocator) -> None:
        """
        One-time setup hook. Pull dependent strategies from the locator here.
        """
        return None

    def target_key(self) -> TypeKey:
        target = type(self).target_type
        if target is None:
            target = _inferred_target(type(self))
        if target is None:
            raise StrategyConfigError(
                f"strategy {type(self).__name__} does not declare a target type; "
                f"subclass ForgingStrategy[<type>] or set target_type"
            )
        return TypeKey.of(target)

    def scope(self) -> tuple[TypeKey, str] | None:
        name = type(self).property_name
        if not name:
            return None
        return TypeKey.of(type(self).containing_type or object), name


@dataclass(slots=True)
class CallableStrategy(ForgingStrategy[Any]):
    """
    Adapts a zero-argument callable into a strategy for ``target``.
    """

    target: Any
    factory: Callable[[], Any]
    owner: type | None = None
    prop: str | None = None

    def forge(self) -> Any:
        return self.factory()

    def target_key(self) -> TypeKey:
        return TypeKey.of(self.target)

    def scope(self) -> tuple[TypeKey, str] | None:
        if not self.prop:
            return None
        return TypeKey.of(self.owner or object), self.prop
