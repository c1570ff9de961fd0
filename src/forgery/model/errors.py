from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from forgery.model.keys import TypeKey


class ForgeryError(RuntimeError):
    """
    Base error type for forging failures.
    """


class ForgeryPreconditionError(ForgeryError, TypeError):
    """
    Raised before any resolution when the forge target is absent or not a type.
    """


class InaccessibleTypeError(ForgeryError):
    """
    Raised when a type exists but refuses to be constructed from Python code.

    The underlying failure is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, type_key: TypeKey):
        super().__init__(message)
        self.type_key = type_key


class UninstantiableTypeError(ForgeryError):
    """
    Raised when a type cannot be instantiated or populated: abstract classes,
    protocols, constructors that need arguments or raise, and failed property
    assignment.

    The underlying failure is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, type_key: TypeKey):
        super().__init__(message)
        self.type_key = type_key


class DependencyUnavailableError(ForgeryError, LookupError):
    """
    Raised by a locator when a strategy asks for a type nobody registered.
    """

    def __init__(self, message: str, *, type_key: TypeKey):
        super().__init__(message)
        self.type_key = type_key


class CyclicGraphError(ForgeryError):
    """
    Raised when recursive descent revisits a type that is still being forged, or
    goes deeper than the engine's configured limit.
    """

    def __init__(self, message: str, *, path: Sequence[TypeKey] = ()):
        super().__init__(message)
        self.path = tuple(path)


class StrategyConfigError(ForgeryError):
    pass
