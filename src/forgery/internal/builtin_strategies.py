from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from faker import Faker

from forgery.strategies import ForgingStrategy

# -------------------------
# leaf value strategies
# -------------------------
#
# Every strategy takes the engine-wide Faker instance so a configured seed and
# locale apply to all of them at once.


@dataclass(slots=True)
class StrStrategy(ForgingStrategy[str]):
    faker: Faker = field(default_factory=Faker)

    def forge(self) -> str:
        return self.faker.word()


@dataclass(slots=True)
class IntStrategy(ForgingStrategy[int]):
    faker: Faker = field(default_factory=Faker)

    def forge(self) -> int:
        return self.faker.pyint()


@dataclass(slots=True)
class FloatStrategy(ForgingStrategy[float]):
    faker: Faker = field(default_factory=Faker)

    def forge(self) -> float:
        return self.faker.pyfloat()


@dataclass(slots=True)
class BoolStrategy(ForgingStrategy[bool]):
    faker: Faker = field(default_factory=Faker)

    def forge(self) -> bool:
        return self.faker.pybool()


@dataclass(slots=True)
class BytesStrategy(ForgingStrategy[bytes]):
    faker: Faker = field(default_factory=Faker)
    length: int = 16

    def forge(self) -> bytes:
        return self.faker.binary(length=self.length)


@dataclass(slots=True)
class DecimalStrategy(ForgingStrategy[Decimal]):
    faker: Faker = field(default_factory=Faker)

    def forge(self) -> Decimal:
        return self.faker.pydecimal(left_digits=6, right_digits=2)


@dataclass(slots=True)
class DateStrategy(ForgingStrategy[datetime.date]):
    faker: Faker = field(default_factory=Faker)

    def forge(self) -> datetime.date:
        return self.faker.date_object()


@dataclass(slots=True)
class DateTimeStrategy(ForgingStrategy[datetime.datetime]):
    faker: Faker = field(default_factory=Faker)

    def forge(self) -> datetime.datetime:
        return self.faker.date_time()


@dataclass(slots=True)
class UUIDStrategy(ForgingStrategy[uuid.UUID]):
    faker: Faker = field(default_factory=Faker)

    def forge(self) -> uuid.UUID:
        return self.faker.uuid4(cast_to=None)
