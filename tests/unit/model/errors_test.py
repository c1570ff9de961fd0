from __future__ import annotations

import pytest

from forgery.model import errors
from forgery.model.keys import TypeKey


@pytest.mark.parametrize(
    "exc_type, also",
    [
        (errors.ForgeryPreconditionError, TypeError),
        (errors.InaccessibleTypeError, RuntimeError),
        (errors.UninstantiableTypeError, RuntimeError),
        (errors.DependencyUnavailableError, LookupError),
        (errors.CyclicGraphError, RuntimeError),
        (errors.StrategyConfigError, RuntimeError),
    ],
)
def test_taxonomy_shares_one_base(exc_type: type, also: type) -> None:
    assert issubclass(exc_type, errors.ForgeryError)
    assert issubclass(exc_type, also)


@pytest.mark.parametrize(
    "exc_type",
    [
        errors.InaccessibleTypeError,
        errors.UninstantiableTypeError,
        errors.DependencyUnavailableError,
    ],
)
def test_type_errors_carry_their_key(exc_type: type) -> None:
    key = TypeKey(int)
    err = exc_type("nope", type_key=key)
    assert err.type_key is key
    assert str(err) == "nope"


def test_cyclic_graph_error_path_is_a_tuple() -> None:
    err = errors.CyclicGraphError("loop", path=[TypeKey(int)])
    assert err.path == (TypeKey(int),)
    assert errors.CyclicGraphError("loop").path == ()
