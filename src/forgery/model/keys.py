from __future__ import annotations

import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Annotated, Any, TypeVar, Union

from typing_extensions import Self

from forgery.model.errors import ForgeryPreconditionError

NULL_TARGET_MESSAGE = "Mission Impossible attempting to forge null classes :)"

_UNION_ORIGINS: tuple[Any, ...] = (Union, types.UnionType)
_GENERIC_MARKERS: tuple[Any, ...] = (typing.Generic, typing.Protocol)


def _display(value: Any) -> str:
    if isinstance(value, TypeKey):
        return str(value)
    if value is Ellipsis:
        return "..."
    if isinstance(value, tuple):
        return "[" + ", ".join(_display(v) for v in value) + "]"
    return getattr(value, "__qualname__", None) or getattr(value, "_name", None) or repr(value)


@dataclass(frozen=True, slots=True)
class TypeKey:
    """
    Immutable handle for a (possibly parameterized) type.

    origin is the runtime class, or a typing special form for shapes that have no
    class of their own (unions, literals). args holds the ordered type arguments as
    nested TypeKey values; non-type arguments (Ellipsis, literal values, callable
    parameter lists) are kept as hashable values.

    Equality and hashing are structural, so ``TypeKey.of(list[Employee])`` and
    ``TypeKey.of(typing.List[Employee])`` are the same registry and cache key.
    """

    origin: Any
    args: tuple[Any, ...] = ()

    def __str__(self) -> str:
        name = _display(self.origin)
        if not self.args:
            return name
        return f"{name}[{', '.join(_display(a) for a in self.args)}]"

    @property
    def runtime_type(self) -> Any:
        return self.origin

    @property
    def is_parameterized(self) -> bool:
        return bool(self.args)

    def bindings(self) -> dict[Any, TypeKey]:
        """
        Map the origin's type variables to this key's arguments.

        ``TypeKey.of(Box[Employee]).bindings()`` is ``{T: TypeKey(Employee)}`` when
        Box is declared as ``class Box(Generic[T])``. Type variables fixed by a
        parameterized base are bound too, so ``class EmployeeBox(Box[Employee])``
        binds Box's T to Employee. Origins without type variables (builtin
        containers) bind nothing.
        """
        bound: dict[Any, TypeKey] = {}
        params = getattr(self.origin, "__parameters__", ())
        if params and self.args:
            bound.update(
                (p, a)
                for p, a in zip(params, self.args)
                if isinstance(p, TypeVar) and isinstance(a, TypeKey)
            )

        if not isinstance(self.origin, type):
            return bound

        # subclasses come first in the MRO, so their arguments are bound before
        # a base refers to them
        for klass in self.origin.__mro__:
            for base in vars(klass).get("__orig_bases__", ()):
                base_origin = typing.get_origin(base)
                if base_origin is None or base_origin in _GENERIC_MARKERS:
                    continue
                base_params = getattr(base_origin, "__parameters__", ())
                for p, a in zip(base_params, typing.get_args(base)):
                    if isinstance(p, TypeVar) and p not in bound and _is_type_like(a):
                        bound[p] = TypeKey.of(a, bound)
        return bound

    # :: MechanicalOperation | type=conversion
    @classmethod
    def of(cls, target: Any, bindings: Mapping[Any, TypeKey] | None = None) -> Self:
        if target is None:
            raise ForgeryPreconditionError(NULL_TARGET_MESSAGE)
        if isinstance(target, TypeKey):
            return target

        if target is Any:
            # an Any annotation carries no shape to construct beyond a plain object
            return cls(object, ())

        bindings = bindings or {}

        if isinstance(target, TypeVar):
            bound = bindings.get(target)
            if bound is not None:
                return bound
            return cls.of(target.__bound__ or object, bindings)

        if isinstance(target, str):
            raise ForgeryPreconditionError(
                f"cannot forge unresolved forward reference {target!r}; pass the class itself"
            )

        origin = typing.get_origin(target)

        if origin is Annotated:
            return cls.of(typing.get_args(target)[0], bindings)

        if origin in _UNION_ORIGINS:
            members = [a for a in typing.get_args(target) if a is not type(None)]
            if len(members) == 1:
                return cls.of(members[0], bindings)
            return cls(Union, tuple(cls.of(m, bindings) for m in members))

        if origin is not None:
            return cls(origin, tuple(_arg_key(a, bindings) for a in typing.get_args(target)))

        if isinstance(target, type):
            return cls(target, ())

        raise ForgeryPreconditionError(
            f"cannot forge {target!r}: expected a class, a parameterized type or a TypeKey"
        )


def _is_type_like(arg: Any) -> bool:
    return (
        arg is Any
        or isinstance(arg, (TypeVar, type))
        or typing.get_origin(arg) is not None
    )


def _arg_key(arg: Any, bindings: Mapping[Any, TypeKey]) -> Any:
    if arg is Ellipsis:
        return arg
    if isinstance(arg, (list, tuple)):
        # Callable[[int, str], X] carries its parameters as a list
        return tuple(_arg_key(a, bindings) for a in arg)
    if _is_type_like(arg):
        return TypeKey.of(arg, bindings)
    # Literal values and other plain hashables stay as they are
    return arg


@dataclass(frozen=True, slots=True)
class PropertyKey:
    """
    One settable property of a containing type: its name and declared type.
    """

    owner: TypeKey
    name: str
    type_key: TypeKey

    def __str__(self) -> str:
        return f"{self.owner}.{self.name}: {self.type_key}"
