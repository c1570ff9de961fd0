from __future__ import annotations

import dataclasses
import inspect
import logging
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Final

from forgery.model.errors import (
    ForgeryError,
    ForgeryPreconditionError,
    InaccessibleTypeError,
    UninstantiableTypeError,
)
from forgery.model.keys import NULL_TARGET_MESSAGE, PropertyKey, TypeKey
from forgery.strategies import ForgingStrategy

if TYPE_CHECKING:
    from forgery.engine import Forgery
    from forgery.locator import StrategyLocator

# Set by CPython on types whose instances cannot be created from Python code
# (generators, frames, ...). Calling such a type raises TypeError.
_TPFLAGS_DISALLOW_INSTANTIATION: Final[int] = 1 << 7

# unions are a shape, not a class; they are uninstantiable rather than hidden
_UNION_TYPES: Final[tuple[Any, ...]] = (typing.Union, types.UnionType)


def disallows_instantiation(tp: Any) -> bool:
    return isinstance(tp, type) and bool(tp.__flags__ & _TPFLAGS_DISALLOW_INSTANTIATION)


def _is_settable_annotation(annotation: Any) -> bool:
    origin = typing.get_origin(annotation)
    if annotation in (ClassVar, Final) or origin in (ClassVar, Final):
        return False
    return True


def _is_frozen_dataclass(tp: Any) -> bool:
    return dataclasses.is_dataclass(tp) and tp.__dataclass_params__.frozen


def _property_annotation(prop: property) -> Any | None:
    """
    Declared type of a settable property: the setter's value parameter, else the
    getter's return annotation.
    """
    setter_hints = typing.get_type_hints(prop.fset)
    params = list(inspect.signature(prop.fset).parameters)
    if len(params) >= 2 and params[1] in setter_hints:
        return setter_hints[params[1]]
    if prop.fget is not None:
        return typing.get_type_hints(prop.fget).get("return")
    return None


# :: UtilityOperation | type=introspection
def settable_properties(
    key: TypeKey, bindings: Mapping[Any, TypeKey] | None = None
) -> list[PropertyKey]:
    """
    Enumerate the public, settable properties of key's runtime type.

    Annotated instance attributes come first, in MRO order, followed by
    ``property`` objects that have a setter. ClassVar and Final annotations,
    private names, read only properties and the fields of frozen dataclasses are
    skipped. Type variables are substituted from bindings.
    """
    tp = key.runtime_type
    if not isinstance(tp, type) or _is_frozen_dataclass(tp):
        return []

    bindings = key.bindings() if bindings is None else bindings
    found: dict[str, PropertyKey] = {}

    descriptors: dict[str, Any] = {}
    for klass in reversed(tp.__mro__):
        descriptors.update(vars(klass))

    for name, annotation in typing.get_type_hints(tp).items():
        if name.startswith("_") or not _is_settable_annotation(annotation):
            continue
        if isinstance(descriptors.get(name), property):
            continue  # handled with the other properties below
        found[name] = PropertyKey(
            owner=key, name=name, type_key=TypeKey.of(annotation, bindings)
        )

    for name, attr in descriptors.items():
        if name.startswith("_") or not isinstance(attr, property):
            continue
        if attr.fset is None:
            continue
        annotation = _property_annotation(attr)
        if annotation is None:
            logging.debug(f"skipping untyped property {key}.{name}")
            continue
        found[name] = PropertyKey(
            owner=key, name=name, type_key=TypeKey.of(annotation, bindings)
        )

    return list(found.values())


def instantiate(key: TypeKey) -> Any:
    """
    Call the no-argument constructor of key's runtime type, wrapping failures.
    """
    tp = key.runtime_type
    try:
        return tp()
    except TypeError as e:
        if disallows_instantiation(tp) and tp not in _UNION_TYPES:
            raise InaccessibleTypeError(
                f"{key} cannot be constructed from Python code", type_key=key
            ) from e
        raise UninstantiableTypeError(f"{key} cannot be instantiated: {e}", type_key=key) from e
    except Exception as e:
        raise UninstantiableTypeError(
            f"{key} constructor failed: {type(e).__name__}: {e}", type_key=key
        ) from e


@dataclass(slots=True)
class ReflectiveStrategy(ForgingStrategy[Any]):
    """
    Fallback strategy synthesized by the engine for types with no registered
    strategy: construct with no arguments, then forge every settable property.
    """

    key: TypeKey
    forgery: Forgery
    properties: tuple[PropertyKey, ...] = field(default=(), init=False)

    def __post_init__(self) -> None:
        if self.key is None:
            raise ForgeryPreconditionError(NULL_TARGET_MESSAGE)

    def target_key(self) -> TypeKey:
        return self.key

    def wire(self, locator: StrategyLocator) -> None:
        try:
            self.properties = tuple(settable_properties(self.key))
        except Exception as e:
            raise UninstantiableTypeError(
                f"cannot read the properties of {self.key}: {type(e).__name__}: {e}",
                type_key=self.key,
            ) from e
        logging.debug(
            f"reflective strategy for {self.key}: properties={[p.name for p in self.properties]}"
        )

    def forge(self) -> Any:
        instance = instantiate(self.key)
        for prop in self.properties:
            try:
                value = self._forge_property(prop)
            except ForgeryError as e:
                e.add_note(f"while forging property {prop}")
                raise
            try:
                setattr(instance, prop.name, value)
            except Exception as e:
                raise UninstantiableTypeError(
                    f"cannot assign property {prop.name} of {self.key}: {type(e).__name__}: {e}",
                    type_key=self.key,
                ) from e
        return instance

    def _forge_property(self, prop: PropertyKey) -> Any:
        override = self.forgery.property_strategy(prop.owner, prop.name)
        if override is not None:
            return override.forge()
        return self.forgery.forge(prop.type_key)
