from __future__ import annotations

# ==============================================================================
# BRANCH LEDGER: engine.py
# ==============================================================================
#
# Classes (in file order):
#   C001 = Forgery
#
# C001M001 __init__:   max_depth < 1 -> ValueError; registered strategies wired once
# C001M002 forge:      None -> precondition error; resolve + descend + strategy.forge()
# C001M003 resolve:    cache hit | registry hit | synthesize ReflectiveStrategy
# C001M004 property_strategy: owner key hit | MRO hit | object wildcard | miss
# C001M005 _descend:   revisit key -> CyclicGraphError; too deep -> CyclicGraphError
# ==============================================================================

import gc
import threading
import types
import weakref

import pytest

from forgery.engine import Forgery
from forgery.internal.reflection import ReflectiveStrategy
from forgery.locator import RegistryStrategyLocator
from forgery.model.errors import (
    CyclicGraphError,
    DependencyUnavailableError,
    ForgeryPreconditionError,
    InaccessibleTypeError,
    UninstantiableTypeError,
)
from forgery.model.keys import TypeKey
from forgery.strategies import CallableStrategy
from unit.helpers.models_helper import (
    AnyAgeStrategy,
    Box,
    Department,
    Employee,
    EmployeeBox,
    EmployeeListStrategy,
    EmptyRegistry,
    ExampleStrStrategy,
    FirstNameStrategy,
    FixedIntStrategy,
    GreetingStrategy,
    LastNameStrategy,
    Loose,
    Manager,
    Node,
    registry_with,
)


def _reflective_only() -> Forgery:
    return Forgery(EmptyRegistry(), RegistryStrategyLocator(EmptyRegistry()))


# ==============================================================================
# forge(): basic usage
# ==============================================================================


def test_forge_creates_instance_of_class() -> None:
    # covers: C001M002, C001M003 (synthesize)
    value = _reflective_only().forge(str)
    assert value is not None
    assert type(value) is str


def test_forge_creates_instance_of_class_with_properties() -> None:
    forgery = Forgery(registry_with(ExampleStrStrategy(), FixedIntStrategy()))

    employee = forgery.forge(Employee)

    assert type(employee) is Employee
    assert employee.first_name == "Example"
    assert employee.last_name == "Example"
    assert employee.age == 3


def test_forge_uses_registered_strategy_for_class() -> None:
    # covers: C001M003 (registry hit)
    forgery = Forgery(registry_with(ExampleStrStrategy()))
    assert forgery.forge(str) == "Example"


@pytest.mark.parametrize("forgery", [_reflective_only(), Forgery(registry_with())])
def test_forge_none_fails_fast_with_fixed_message(forgery: Forgery) -> None:
    # covers: C001M002 (None)
    with pytest.raises(ForgeryPreconditionError) as ei:
        forgery.forge(None)
    assert str(ei.value) == "Mission Impossible attempting to forge null classes :)"


def test_forge_rejects_non_type_target() -> None:
    with pytest.raises(ForgeryPreconditionError):
        _reflective_only().forge(42)


def test_property_specific_strategies_fill_relevant_data() -> None:
    # covers: C001M004 (owner key hit)
    forgery = Forgery(
        registry_with(FirstNameStrategy(), LastNameStrategy(), ExampleStrStrategy())
    )

    employee = forgery.forge(Employee)
    department = forgery.forge(Department)

    assert employee.first_name == "John"
    assert employee.last_name == "Smith"
    # the generic str strategy still applies everywhere else
    assert department.name == "Example"
    assert department.head.first_name == "John"


def test_property_strategy_scoped_to_base_class_applies_to_subclass() -> None:
    # covers: C001M004 (MRO hit)
    employees = EmployeeListStrategy()
    forgery = Forgery(registry_with(FirstNameStrategy(), LastNameStrategy(), employees))

    manager = forgery.forge(Manager)

    assert type(manager) is Manager
    assert manager.first_name == "John"
    assert manager.last_name == "Smith"
    assert manager.reports is employees.produced[-1]


def test_property_strategy_without_owner_matches_any_type() -> None:
    # covers: C001M004 (object wildcard)
    forgery = Forgery(registry_with(AnyAgeStrategy(), FixedIntStrategy()))
    assert forgery.forge(Employee).age == 42
    assert forgery.forge(Manager).age == 42


def test_property_strategy_miss_returns_none() -> None:
    forgery = Forgery(registry_with(FirstNameStrategy()))
    assert forgery.property_strategy(TypeKey.of(Department), "first_name") is None


# ==============================================================================
# parameterized types
# ==============================================================================


def test_forge_parameterized_type_uses_strategy_for_that_shape() -> None:
    employees = EmployeeListStrategy()
    forgery = Forgery(registry_with(employees))

    value = forgery.forge(list[Employee])

    assert value is employees.produced[-1]
    # the bare container does not match the parameterized registration
    assert forgery.resolve(list) is not employees


def test_forge_generic_class_threads_type_arguments_to_properties() -> None:
    forgery = Forgery(registry_with(FirstNameStrategy(), LastNameStrategy()))

    box = forgery.forge(Box[Employee])

    assert type(box.item) is Employee
    assert box.item.first_name == "John"


def test_forge_subclass_of_parameterized_generic_keeps_type_arguments() -> None:
    forgery = Forgery(registry_with(FirstNameStrategy()))

    box = forgery.forge(EmployeeBox)

    assert type(box) is EmployeeBox
    assert type(box.item) is Employee
    assert box.item.first_name == "John"


def test_forge_any_property_gets_a_plain_object() -> None:
    loose = _reflective_only().forge(Loose)
    assert type(loose.payload) is object


# ==============================================================================
# caching
# ==============================================================================


def test_forge_works_multiple_times() -> None:
    forgery = _reflective_only()
    for _ in range(3):
        assert forgery.forge(Employee) is not None


def test_resolve_is_sticky_and_values_are_fresh() -> None:
    # covers: C001M003 (cache hit)
    forgery = _reflective_only()

    first = forgery.resolve(Employee)
    second = forgery.resolve(TypeKey.of(Employee))

    assert first is second
    assert isinstance(first, ReflectiveStrategy)
    assert forgery.forge(Employee) is not forgery.forge(Employee)


def test_first_resolution_wins_over_later_registration() -> None:
    registry = registry_with()
    forgery = Forgery(registry)
    assert forgery.forge(str) == ""

    registry.register(ExampleStrStrategy())

    assert forgery.forge(str) == ""
    assert Forgery(registry).forge(str) == "Example"


def test_engines_have_independent_caches() -> None:
    registry = registry_with()
    one = Forgery(registry)
    two = Forgery(registry)
    assert one.resolve(Employee) is not two.resolve(Employee)


def test_concurrent_resolution_caches_a_single_strategy() -> None:
    forgery = _reflective_only()
    barrier = threading.Barrier(8)
    seen: list[object] = []

    def _worker() -> None:
        barrier.wait()
        seen.append(forgery.resolve(Department))

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(s) for s in seen}) == 1


# ==============================================================================
# wiring
# ==============================================================================


def test_registered_strategies_are_wired_once_at_construction() -> None:
    # covers: C001M001
    greeting = GreetingStrategy()
    forgery = Forgery(registry_with(ExampleStrStrategy(), greeting))

    assert greeting.wire_calls == 1
    assert forgery.forge(bytes) == b"hello Example"
    assert forgery.forge(bytes) == b"hello Example"
    assert greeting.wire_calls == 1


def test_strategy_registered_after_construction_is_wired_on_first_resolution() -> None:
    registry = registry_with(ExampleStrStrategy())
    forgery = Forgery(registry)
    greeting = GreetingStrategy()
    registry.register(greeting)

    assert greeting.wire_calls == 0
    assert forgery.forge(bytes) == b"hello Example"
    assert greeting.wire_calls == 1


def test_replaced_strategy_does_not_hide_wiring_of_its_successor() -> None:
    registry = registry_with(ExampleStrStrategy(), GreetingStrategy())
    forgery = Forgery(registry)
    first = registry.lookup(TypeKey.of(bytes))
    first_ref = weakref.ref(first)

    registry.register(CallableStrategy(target=bytes, factory=lambda: b"plain"))
    del first
    gc.collect()
    successor = GreetingStrategy()
    registry.register(successor)

    # the engine keeps every wired strategy alive, so its identity stays unique
    assert first_ref() is not None
    assert forgery.forge(bytes) == b"hello Example"
    assert successor.wire_calls == 1


def test_missing_dependency_surfaces_from_wiring() -> None:
    with pytest.raises(DependencyUnavailableError) as ei:
        Forgery(registry_with(GreetingStrategy()))
    assert ei.value.type_key == TypeKey.of(str)


def test_max_depth_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Forgery(EmptyRegistry(), max_depth=0)


# ==============================================================================
# failures
# ==============================================================================


def test_forge_inaccessible_type_wraps_access_failure() -> None:
    with pytest.raises(InaccessibleTypeError) as ei:
        _reflective_only().forge(types.GeneratorType)
    assert isinstance(ei.value.__cause__, TypeError)
    assert ei.value.type_key == TypeKey.of(types.GeneratorType)


def test_forge_uninstantiable_type_wraps_instantiation_failure() -> None:
    # the engine has no no-argument constructor
    with pytest.raises(UninstantiableTypeError) as ei:
        _reflective_only().forge(Forgery)
    assert isinstance(ei.value.__cause__, TypeError)


def test_forge_self_referential_type_raises_cyclic_graph_error() -> None:
    # covers: C001M005 (revisit)
    with pytest.raises(CyclicGraphError) as ei:
        _reflective_only().forge(Node)
    assert ei.value.path == (TypeKey.of(Node), TypeKey.of(Node))
    assert any("parent" in note for note in ei.value.__notes__)


def test_forge_deeper_than_max_depth_raises_cyclic_graph_error() -> None:
    # covers: C001M005 (too deep): Department -> Employee -> str is three levels
    forgery = Forgery(EmptyRegistry(), max_depth=2)
    with pytest.raises(CyclicGraphError) as ei:
        forgery.forge(Department)
    assert "deeper than 2" in str(ei.value)


def test_failed_forge_leaves_engine_usable() -> None:
    forgery = _reflective_only()
    with pytest.raises(CyclicGraphError):
        forgery.forge(Node)
    assert forgery.forge(Employee) is not None
