"""Marshmallow schemas for saved sets.

`dump_saved_set` / `load_saved_set` convert between the frozen value types
and the JSON document kept by the history store. The `*ViewSchema` classes
add read-only fields for API responses.
"""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load, validate

from loteria.errors import ValidationError
from loteria.services.reconciliation import combination_hits, conference_status, is_winner
from loteria.services.saved_sets import (
    Combination,
    ConferenceRecord,
    ContestRecord,
    ContestStatus,
    PlainSavedSet,
    Provenance,
    SavedSet,
    TeimosinhaSavedSet,
    normalize_numbers,
)
from loteria.variants import get_variant


def _dump_combinations(obj: Any) -> list[list[int]]:
    return [list(c.numbers) for c in obj.combinations]


def _load_combinations(value: Any) -> tuple[Combination, ...]:
    return tuple(Combination(numbers=normalize_numbers(v)) for v in value)


class ConferenceRecordSchema(Schema):
    winning_numbers = fields.List(fields.Int(), required=True)
    # BSON documents only take string keys; tiers go back to int on load.
    summary = fields.Dict(keys=fields.Str(), values=fields.Int(), required=True)
    checked_at = fields.AwareDateTime(required=True)
    provenance = fields.Enum(Provenance, by_value=True, required=True)

    @post_load
    def _make(self, data, **kwargs):  # type: ignore[no-untyped-def]
        return ConferenceRecord(
            winning_numbers=normalize_numbers(data["winning_numbers"]),
            summary=dict(sorted((int(k), v) for k, v in data["summary"].items())),
            checked_at=data["checked_at"],
            provenance=data["provenance"],
        )


class ContestRecordSchema(Schema):
    contest = fields.Int(required=True)
    status = fields.Enum(ContestStatus, by_value=True, required=True)
    winning_numbers = fields.List(fields.Int(), allow_none=True, load_default=None)
    hits = fields.Int(allow_none=True, load_default=None)

    @post_load
    def _make(self, data, **kwargs):  # type: ignore[no-untyped-def]
        drawn = data.get("winning_numbers")
        return ContestRecord(
            contest=data["contest"],
            status=data["status"],
            winning_numbers=normalize_numbers(drawn) if drawn is not None else None,
            hits=data.get("hits"),
        )


class _SavedSetBaseSchema(Schema):
    id = fields.Str(required=True)
    kind = fields.Str(required=True, validate=validate.OneOf(["plain", "teimosinha"]))
    variant_id = fields.Str(required=True)
    target_contest = fields.Int(required=True)
    created_at = fields.AwareDateTime(required=True)
    combinations = fields.Function(
        _dump_combinations,
        deserialize=_load_combinations,
        required=True,
    )


class PlainSavedSetSchema(_SavedSetBaseSchema):
    conference = fields.Nested(ConferenceRecordSchema, allow_none=True, load_default=None)

    @post_load
    def _make(self, data, **kwargs):  # type: ignore[no-untyped-def]
        data.pop("kind", None)
        return PlainSavedSet(**data)


class TeimosinhaSavedSetSchema(_SavedSetBaseSchema):
    contest_count = fields.Int(required=True, validate=validate.Range(min=1))
    records = fields.List(fields.Nested(ContestRecordSchema), required=True)

    @post_load
    def _make(self, data, **kwargs):  # type: ignore[no-untyped-def]
        data.pop("kind", None)
        data["records"] = tuple(data["records"])
        return TeimosinhaSavedSet(**data)


_DOCUMENT_SCHEMAS: dict[str, Schema] = {
    PlainSavedSet.kind: PlainSavedSetSchema(),
    TeimosinhaSavedSet.kind: TeimosinhaSavedSetSchema(),
}


def dump_saved_set(saved_set: SavedSet) -> dict[str, Any]:
    """Serialize a saved set to its JSON document."""

    return _DOCUMENT_SCHEMAS[saved_set.kind].dump(saved_set)


def load_saved_set(document: dict[str, Any]) -> SavedSet:
    """Rebuild a saved set from its JSON document."""

    schema = _DOCUMENT_SCHEMAS.get(str(document.get("kind")))
    if schema is None:
        raise ValidationError(
            message="Unknown saved set kind",
            details={"kind": [f"Must be one of {sorted(_DOCUMENT_SCHEMAS)}"]},
        )
    return schema.load(document)


class PlainSavedSetViewSchema(PlainSavedSetSchema):
    variant_name = fields.Method("_variant_name")
    status = fields.Method("_status")
    is_winner = fields.Method("_is_winner")
    hits = fields.Method("_hits")

    def _variant_name(self, obj: PlainSavedSet) -> str:
        return get_variant(obj.variant_id).name

    def _status(self, obj: PlainSavedSet) -> str:
        return conference_status(obj).value

    def _is_winner(self, obj: PlainSavedSet) -> bool:
        return is_winner(obj)

    def _hits(self, obj: PlainSavedSet) -> list[int | None]:
        return list(combination_hits(obj))


class TeimosinhaSavedSetViewSchema(TeimosinhaSavedSetSchema):
    variant_name = fields.Method("_variant_name")
    last_contest = fields.Int()
    is_winner = fields.Method("_is_winner")
    completed = fields.Method("_completed")

    def _variant_name(self, obj: TeimosinhaSavedSet) -> str:
        return get_variant(obj.variant_id).name

    def _is_winner(self, obj: TeimosinhaSavedSet) -> bool:
        return is_winner(obj)

    def _completed(self, obj: TeimosinhaSavedSet) -> bool:
        return all(r.status is ContestStatus.CHECKED for r in obj.records)


_VIEW_SCHEMAS: dict[str, Schema] = {
    PlainSavedSet.kind: PlainSavedSetViewSchema(),
    TeimosinhaSavedSet.kind: TeimosinhaSavedSetViewSchema(),
}


def view_saved_set(saved_set: SavedSet) -> dict[str, Any]:
    """Serialize a saved set for API responses."""

    return _VIEW_SCHEMAS[saved_set.kind].dump(saved_set)
