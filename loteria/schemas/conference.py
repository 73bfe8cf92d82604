"""Schemas for conference (result checking) requests."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class ManualCheckSchema(Schema):
    """Winning numbers typed in by the user.

    Only the shape is checked here; count, range and duplicates are checked
    by the conference rules so the error can name the offending numbers.
    """

    numbers = fields.List(
        fields.Integer(strict=False),
        required=True,
        validate=validate.Length(min=1, max=100),
    )


class AutoCheckResponseSchema(Schema):
    examined = fields.Integer(required=True)
    updated = fields.Integer(required=True)
    ids = fields.List(fields.String(), required=True)
