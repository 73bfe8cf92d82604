"""Conference (reconciliation) rules for saved sets.

Every function here is a pure transformation over the immutable values of
`loteria.services.saved_sets`: inputs are never mutated and persisting the
returned value is the caller's job.

Plain set status: unchecked -> manually checked -> unchecked (undo), and
unchecked/manually checked -> officially checked, which has no way out.
Teimosinha contest records only go pending -> checked, in contest order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from datetime import datetime

from loteria.errors import ConferenceLocked, InvalidWinningNumbers, ValidationError
from loteria.services.saved_sets import (
    Combination,
    ConferenceRecord,
    ConferenceStatus,
    ContestStatus,
    DrawResult,
    NumberTuple,
    PlainSavedSet,
    Provenance,
    SavedSet,
    TeimosinhaSavedSet,
    utcnow,
)
from loteria.variants import LotteryVariant, get_variant

logger = logging.getLogger(__name__)

ResultLookup = Callable[[LotteryVariant, int], DrawResult | None]


def compute_hits(combination: Combination | Iterable[int], winning_numbers: Iterable[int]) -> int:
    """Count numbers present in both collections (order and repeats ignored)."""

    return len({int(n) for n in combination} & {int(n) for n in winning_numbers})


def summarize_tiers(
    combinations: Iterable[Combination],
    winning_numbers: Iterable[int],
    variant: LotteryVariant,
) -> dict[int, int]:
    """Map prize tier -> number of combinations hitting exactly that tier.

    Non-prize hit counts leave no entry, so a losing check yields `{}`.
    """

    drawn = {int(n) for n in winning_numbers}
    tiers = set(variant.prize_tiers)
    summary: dict[int, int] = {}
    for combination in combinations:
        hits = compute_hits(combination, drawn)
        if hits in tiers:
            summary[hits] = summary.get(hits, 0) + 1
    return dict(sorted(summary.items()))


def validate_winning_numbers(numbers: Iterable[int], variant: LotteryVariant) -> NumberTuple:
    """Return the sorted numbers or raise `InvalidWinningNumbers`.

    The error details echo the submitted numbers and name every duplicated
    and out-of-range value so the caller can keep the input for correction.
    """

    raw = list(numbers)
    try:
        values = [int(n) for n in raw]
    except (TypeError, ValueError) as exc:
        raise InvalidWinningNumbers(
            message="Winning numbers must be integers",
            details={"numbers": [str(n) for n in raw]},
        ) from exc

    seen: set[int] = set()
    duplicates: set[int] = set()
    for n in values:
        if n in seen:
            duplicates.add(n)
        seen.add(n)
    out_of_range = sorted({n for n in values if n < 1 or n > variant.total})

    if duplicates or out_of_range or len(values) != variant.numbers:
        problems: list[str] = []
        if len(values) != variant.numbers:
            problems.append(f"Expected {variant.numbers} numbers, got {len(values)}")
        if duplicates:
            problems.append(f"Repeated numbers: {', '.join(str(n) for n in sorted(duplicates))}")
        if out_of_range:
            problems.append(f"Numbers must be within 1..{variant.total}: {', '.join(str(n) for n in out_of_range)}")
        raise InvalidWinningNumbers(
            message="; ".join(problems),
            details={
                "expected_count": variant.numbers,
                "received_count": len(values),
                "duplicates": sorted(duplicates),
                "out_of_range": out_of_range,
                "numbers": values,
            },
        )

    return tuple(sorted(values))


def _require_plain(saved_set: SavedSet, operation: str) -> PlainSavedSet:
    if not isinstance(saved_set, PlainSavedSet):
        raise ValidationError(
            message=f"{operation} applies to plain saved sets only",
            details={"id": saved_set.id, "kind": saved_set.kind},
        )
    return saved_set


def apply_conference(
    saved_set: SavedSet,
    winning_numbers: Iterable[int],
    provenance: Provenance | str,
    *,
    now: datetime | None = None,
) -> PlainSavedSet:
    """Check a plain set against `winning_numbers` and return the updated set.

    Manual checks are refused with `ConferenceLocked` once an official record
    exists. Official checks always replace whatever record was there.
    """

    plain = _require_plain(saved_set, "Conference")
    provenance = Provenance(provenance)

    if (
        provenance is Provenance.MANUAL
        and plain.conference is not None
        and plain.conference.provenance is Provenance.OFFICIAL
    ):
        raise ConferenceLocked(details={"id": plain.id, "target_contest": plain.target_contest})

    variant = get_variant(plain.variant_id)
    drawn = validate_winning_numbers(winning_numbers, variant)

    record = ConferenceRecord(
        winning_numbers=drawn,
        summary=summarize_tiers(plain.combinations, drawn, variant),
        checked_at=now or utcnow(),
        provenance=provenance,
    )

    if plain.conference is not None and plain.conference.provenance is Provenance.MANUAL:
        logger.info("Replacing manual conference of %s with %s result", plain.id, provenance.value)
    logger.debug("Conference of %s: %s %s", plain.id, provenance.value, record.summary)
    return replace(plain, conference=record)


def undo_manual_conference(saved_set: SavedSet) -> SavedSet:
    """Drop a manual record; official or missing records are left alone."""

    if not isinstance(saved_set, PlainSavedSet):
        return saved_set
    if saved_set.conference is None or saved_set.conference.provenance is not Provenance.MANUAL:
        return saved_set
    return replace(saved_set, conference=None)


def advance_teimosinha(
    saved_set: SavedSet,
    result_lookup: ResultLookup,
    *,
    variant: LotteryVariant | None = None,
) -> TeimosinhaSavedSet:
    """Check pending contests in ascending order until one is unavailable.

    A contest that cannot be looked up (not drawn yet, network failure, a
    lookup error, or numbers that fail `validate_winning_numbers`) ends the
    pass: later contests stay pending. All newly checked records are
    returned in a single new value.
    """

    if not isinstance(saved_set, TeimosinhaSavedSet):
        raise ValidationError(
            message="Advance applies to teimosinha saved sets only",
            details={"id": saved_set.id, "kind": saved_set.kind},
        )

    variant = variant or get_variant(saved_set.variant_id)
    records = list(saved_set.records)
    changed = False

    for index, record in enumerate(records):
        if record.status is ContestStatus.CHECKED:
            continue

        try:
            result = result_lookup(variant, record.contest)
        except Exception:
            logger.warning("Lookup failed for %s contest %s", variant.id, record.contest, exc_info=True)
            result = None

        if result is None or int(result.contest) != record.contest:
            logger.debug("Contest %s of %s not available yet; stopping", record.contest, saved_set.id)
            break

        try:
            drawn = validate_winning_numbers(result.numbers, variant)
        except InvalidWinningNumbers as exc:
            logger.warning(
                "Discarding malformed official result for %s contest %s: %s",
                variant.id, record.contest, exc.message,
            )
            break

        records[index] = replace(
            record,
            status=ContestStatus.CHECKED,
            winning_numbers=drawn,
            hits=compute_hits(saved_set.combination, drawn),
        )
        changed = True

    if not changed:
        return saved_set
    return replace(saved_set, records=tuple(records))


def select_auto_check_candidates(all_sets: Iterable[SavedSet]) -> list[SavedSet]:
    """Sets an official-result pass may update.

    Plain sets qualify with no record or a manual one. Teimosinha sets always
    qualify; a fully checked one is simply a no-op for `advance_teimosinha`.
    """

    candidates: list[SavedSet] = []
    for saved_set in all_sets:
        if isinstance(saved_set, TeimosinhaSavedSet):
            candidates.append(saved_set)
        elif saved_set.conference is None or saved_set.conference.provenance is Provenance.MANUAL:
            candidates.append(saved_set)
    return candidates


def conference_status(saved_set: PlainSavedSet) -> ConferenceStatus:
    if saved_set.conference is None:
        return ConferenceStatus.UNCHECKED
    if saved_set.conference.provenance is Provenance.OFFICIAL:
        return ConferenceStatus.OFFICIALLY_CHECKED
    return ConferenceStatus.MANUALLY_CHECKED


def combination_hits(saved_set: PlainSavedSet) -> Sequence[int | None]:
    """Hits per combination against the current record (None when unchecked)."""

    if saved_set.conference is None:
        return [None for _ in saved_set.combinations]
    drawn = saved_set.conference.winning_numbers
    return [compute_hits(c, drawn) for c in saved_set.combinations]


def is_winner(saved_set: SavedSet, variant: LotteryVariant | None = None) -> bool:
    """True when any checked result of the set reached a prize tier."""

    if isinstance(saved_set, PlainSavedSet):
        return bool(saved_set.conference and saved_set.conference.summary)

    tiers = set((variant or get_variant(saved_set.variant_id)).prize_tiers)
    return any(
        r.status is ContestStatus.CHECKED and r.hits in tiers
        for r in saved_set.records
    )
