"""Value types for saved combination sets.

A saved set is a tagged union of two cases:

- `PlainSavedSet`: 1..N combinations checked once against `target_contest`,
  carrying at most one `ConferenceRecord`.
- `TeimosinhaSavedSet`: exactly one combination tracked over `contest_count`
  consecutive contests starting at `target_contest`, one `ContestRecord` each.

All types are frozen; updates go through `dataclasses.replace`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Iterable, Union

from loteria.errors import InvalidCombination, ValidationError
from loteria.variants import LotteryVariant


NumberTuple = tuple[int, ...]


class Provenance(str, Enum):
    MANUAL = "manual"
    OFFICIAL = "official"


class ContestStatus(str, Enum):
    PENDING = "pending"
    CHECKED = "checked"


class ConferenceStatus(str, Enum):
    UNCHECKED = "unchecked"
    MANUALLY_CHECKED = "manually_checked"
    OFFICIALLY_CHECKED = "officially_checked"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_saved_set_id() -> str:
    return f"saved-{uuid.uuid4().hex}"


def normalize_numbers(numbers: Iterable[int]) -> NumberTuple:
    return tuple(sorted(int(n) for n in numbers))


@dataclass(frozen=True)
class Combination:
    """One candidate set of numbers, stored sorted."""

    numbers: NumberTuple

    @classmethod
    def create(cls, numbers: Iterable[int], variant: LotteryVariant) -> Combination:
        """Validate `numbers` against the variant and build a combination."""

        try:
            values = [int(n) for n in numbers]
        except (TypeError, ValueError) as exc:
            raise InvalidCombination(details={"numbers": ["Numbers must be integers"]}) from exc

        problems: list[str] = []
        if len(values) != variant.numbers:
            problems.append(f"Expected {variant.numbers} numbers, got {len(values)}")
        if len(set(values)) != len(values):
            problems.append("Numbers must be unique")
        out_of_range = sorted({n for n in values if n < 1 or n > variant.total})
        if out_of_range:
            problems.append(f"Numbers must be within 1..{variant.total}: {out_of_range}")
        if problems:
            raise InvalidCombination(details={"numbers": problems})

        return cls(numbers=normalize_numbers(values))

    def __iter__(self):
        return iter(self.numbers)

    def __len__(self) -> int:
        return len(self.numbers)


@dataclass(frozen=True)
class DrawResult:
    """Official numbers of one contest."""

    contest: int
    numbers: NumberTuple
    draw_date: str | None = None


@dataclass(frozen=True)
class ConferenceRecord:
    """Outcome of checking a plain set against one set of winning numbers.

    `summary` maps prize tier -> number of combinations with that many hits
    and only holds tiers with at least one winner; an empty summary means
    "checked, no prize".
    """

    winning_numbers: NumberTuple
    summary: dict[int, int]
    checked_at: datetime
    provenance: Provenance


@dataclass(frozen=True)
class ContestRecord:
    contest: int
    status: ContestStatus = ContestStatus.PENDING
    winning_numbers: NumberTuple | None = None
    hits: int | None = None


@dataclass(frozen=True)
class PlainSavedSet:
    id: str
    variant_id: str
    combinations: tuple[Combination, ...]
    target_contest: int
    created_at: datetime = field(default_factory=utcnow)
    conference: ConferenceRecord | None = None

    kind: ClassVar[str] = "plain"

    def __post_init__(self) -> None:
        if not self.combinations:
            raise ValidationError(
                message="Invalid saved set",
                details={"combinations": ["At least one combination is required"]},
            )


@dataclass(frozen=True)
class TeimosinhaSavedSet:
    id: str
    variant_id: str
    combinations: tuple[Combination, ...]
    target_contest: int
    contest_count: int
    records: tuple[ContestRecord, ...]
    created_at: datetime = field(default_factory=utcnow)

    kind: ClassVar[str] = "teimosinha"

    def __post_init__(self) -> None:
        if len(self.combinations) != 1:
            raise ValidationError(
                message="Invalid teimosinha",
                details={"combinations": ["A teimosinha tracks exactly one combination"]},
            )
        if self.contest_count < 1:
            raise ValidationError(
                message="Invalid teimosinha",
                details={"contest_count": ["Must be >= 1"]},
            )
        expected = [self.target_contest + i for i in range(self.contest_count)]
        if [r.contest for r in self.records] != expected:
            raise ValidationError(
                message="Invalid teimosinha",
                details={"records": [f"Expected one record per contest {expected[0]}..{expected[-1]}"]},
            )

    @classmethod
    def start(
        cls,
        *,
        id: str,
        variant_id: str,
        combination: Combination,
        target_contest: int,
        contest_count: int,
        created_at: datetime | None = None,
    ) -> TeimosinhaSavedSet:
        """Build a teimosinha with every contest still pending."""

        return cls(
            id=id,
            variant_id=variant_id,
            combinations=(combination,),
            target_contest=int(target_contest),
            contest_count=int(contest_count),
            records=tuple(ContestRecord(contest=int(target_contest) + i) for i in range(max(int(contest_count), 0))),
            created_at=created_at or utcnow(),
        )

    @property
    def combination(self) -> Combination:
        return self.combinations[0]

    @property
    def last_contest(self) -> int:
        return self.target_contest + self.contest_count - 1


SavedSet = Union[PlainSavedSet, TeimosinhaSavedSet]
