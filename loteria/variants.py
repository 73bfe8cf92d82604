"""Lottery variants (game configurations)."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from loteria.errors import NotFoundError, ValidationError


@dataclass(frozen=True)
class LotteryVariant:
    """Immutable game configuration.

    `numbers` is the arity of one combination, `total` the size of the pool
    (numbers are drawn from 1..total) and `prize_tiers` the hit counts that
    pay a prize.
    """

    id: str
    name: str
    numbers: int
    total: int
    prize_tiers: tuple[int, ...]
    api_name: str

    def __post_init__(self) -> None:
        if self.numbers < 1 or self.total < self.numbers:
            raise ValidationError(
                message="Invalid lottery variant",
                details={"id": self.id, "numbers": self.numbers, "total": self.total},
            )
        if any(t < 0 or t > self.numbers for t in self.prize_tiers):
            raise ValidationError(
                message="Invalid lottery variant",
                details={"id": self.id, "prize_tiers": list(self.prize_tiers)},
            )
        object.__setattr__(self, "prize_tiers", tuple(sorted(set(self.prize_tiers))))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "numbers": self.numbers,
            "total": self.total,
            "prize_tiers": list(self.prize_tiers),
        }


LOTOFACIL = LotteryVariant(
    id="lotofacil",
    name="Lotofácil",
    numbers=15,
    total=25,
    prize_tiers=(11, 12, 13, 14, 15),
    api_name="lotofacil",
)

MEGASENA = LotteryVariant(
    id="megasena",
    name="Mega-Sena",
    numbers=6,
    total=60,
    prize_tiers=(4, 5, 6),
    api_name="megasena",
)

_lock = Lock()
_REGISTRY: dict[str, LotteryVariant] = {v.id: v for v in (LOTOFACIL, MEGASENA)}


def register_variant(variant: LotteryVariant) -> LotteryVariant:
    """Add (or replace) a variant in the registry."""

    with _lock:
        _REGISTRY[variant.id] = variant
    return variant


def get_variant(variant_id: str) -> LotteryVariant:
    variant = _REGISTRY.get(str(variant_id).lower().strip())
    if variant is None:
        raise NotFoundError(message=f"Unknown lottery variant '{variant_id}'")
    return variant


def list_variants() -> list[LotteryVariant]:
    return sorted(_REGISTRY.values(), key=lambda v: v.id)
