"""Variant, draw history and generation routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from loteria.errors import ValidationError
from loteria.schemas.generate import DrawResultSchema, GenerateRequestSchema, GenerateResponseSchema
from loteria.utils.responses import ok
from loteria.variants import get_variant, list_variants

generate_bp = Blueprint("generate", __name__)

_draws_schema = DrawResultSchema(many=True)
_request_schema = GenerateRequestSchema()
_response_schema = GenerateResponseSchema()


@generate_bp.get("/variants")
def get_variants():
    return ok([v.to_dict() for v in list_variants()])


@generate_bp.get("/draws/<variant_id>")
def get_recent_draws(variant_id: str):
    """Latest draws of a variant plus the next contest number.

    Query params:
    - n: how many recent contests to fetch (default 10, max 200)
    """

    raw_n = (request.args.get("n") or "").strip()
    count = 10
    if raw_n:
        try:
            count = int(raw_n)
        except ValueError as e:
            raise ValidationError("n must be an integer") from e
        if not (1 <= count <= 200):
            raise ValidationError("n must be between 1 and 200")

    variant = get_variant(variant_id)
    draws = current_app.extensions["draw_results"].recent_draws(variant, count)

    return ok(
        {
            "variant": variant.to_dict(),
            "target_contest": draws[0].contest + 1,
            "draws": _draws_schema.dump(draws),
        }
    )


@generate_bp.post("/generate")
def generate_games():
    payload = request.get_json(silent=True) or {}
    data = _request_schema.load(payload)

    variant = get_variant(data["variant"])
    draws = current_app.extensions["draw_results"].recent_draws(variant, int(data["contests_to_analyze"]))
    games = current_app.extensions["generator"].generate(variant, draws, int(data["count"]))

    return ok(
        _response_schema.dump(
            {
                "variant": variant.id,
                "target_contest": draws[0].contest + 1,
                "draws_analyzed": len(draws),
                "games": [list(g.numbers) for g in games],
            }
        )
    )
