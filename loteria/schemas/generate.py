"""Schemas for draw history and combination generation."""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from loteria.services.generator_service import MAX_GAMES


class DrawResultSchema(Schema):
    contest = fields.Integer(required=True)
    numbers = fields.List(fields.Integer(), required=True)
    draw_date = fields.String(allow_none=True)


class GenerateRequestSchema(Schema):
    variant = fields.String(required=True)

    count = fields.Integer(
        required=False,
        load_default=1,
        validate=validate.Range(min=1, max=MAX_GAMES),
    )

    contests_to_analyze = fields.Integer(
        required=False,
        load_default=10,
        validate=validate.Range(min=1, max=200),
    )


class GenerateResponseSchema(Schema):
    variant = fields.String(required=True)
    target_contest = fields.Integer(required=True)
    draws_analyzed = fields.Integer(required=True)
    games = fields.List(fields.List(fields.Integer()), required=True)


class SaveSetRequestSchema(Schema):
    variant = fields.String(required=True)

    combinations = fields.List(
        fields.List(fields.Integer(), validate=validate.Length(min=1)),
        required=True,
        validate=validate.Length(min=1, max=MAX_GAMES),
    )

    target_contest = fields.Integer(required=True, validate=validate.Range(min=1))

    teimosinha_contests = fields.Integer(
        required=False,
        load_default=None,
        allow_none=True,
        validate=validate.Range(min=1, max=100),
    )

    @validates_schema
    def _validate_teimosinha(self, data, **kwargs):  # type: ignore[no-untyped-def]
        if data.get("teimosinha_contests") is None:
            return
        if len(data.get("combinations") or []) != 1:
            raise ValidationError({"combinations": ["A teimosinha must hold exactly one combination"]})
