"""Ask a generative-AI chat model for new combinations based on recent draws."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from loteria.errors import ConfigurationError, GenerationError, ValidationError
from loteria.services.saved_sets import Combination, DrawResult
from loteria.variants import LotteryVariant


logger = logging.getLogger(__name__)

MAX_GAMES = 200

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

PROMPT_TEMPLATE = """\
Você é um especialista em Análise Combinatória, Teoria das Probabilidades e Estatística Descritiva, focado em loterias. \
Analise os dados dos últimos {n_draws} concursos da {name} abaixo e, com base nessa análise multifatorial, gere {count} jogo(s).

DADOS PARA ANÁLISE:
{history}

INSTRUÇÕES:
1. Baseie-se exclusivamente nos dados fornecidos.
2. Combine os seguintes estudos para escolher as dezenas:
   a. Frequência e atraso: equilibre dezenas quentes (mais sorteadas) e frias (maior atraso).
   b. Pares e ímpares: siga a proporção mais comum nos resultados.
   c. Soma das dezenas: mantenha a soma na faixa mais frequente.
   d. Repetição do concurso anterior: aplique a média de dezenas repetidas.
   e. Moldura e miolo: replique a distribuição mais sorteada entre bordas e centro do volante.
   f. Números especiais: pondere primos e números da sequência de Fibonacci.
3. Cada jogo deve conter exatamente {numbers} números únicos, entre 1 e {total}.
4. Retorne APENAS JSON no formato {{"games": [[1,2,3,...], [4,5,6,...]]}}, sem texto, explicações ou markdown.
"""


def build_prompt(variant: LotteryVariant, draws: Sequence[DrawResult], count: int) -> str:
    history = "\n".join(
        f"Concurso {d.contest}: {', '.join(str(n) for n in d.numbers)}" for d in draws
    )
    return PROMPT_TEMPLATE.format(
        n_draws=len(draws),
        name=variant.name,
        count=count,
        history=history,
        numbers=variant.numbers,
        total=variant.total,
    )


def _response_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        # Some chat models return content blocks.
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )
    return str(content or "").strip()


def parse_games(text: str, variant: LotteryVariant, count: int) -> list[Combination]:
    """Extract `count` valid combinations from the model's JSON answer."""

    if not text:
        raise GenerationError(
            message="The model returned an empty response; it may have been filtered. Try again."
        )

    match = _FENCE_RE.match(text)
    if match:
        text = match.group(1)

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GenerationError(message="The model response is not valid JSON") from exc

    games = payload.get("games") if isinstance(payload, dict) else None
    if not isinstance(games, list):
        raise GenerationError(message="The model response has no 'games' list")

    combinations: list[Combination] = []
    rejected = 0
    for game in games:
        try:
            combinations.append(Combination.create(game, variant))
        except ValidationError:
            rejected += 1
        if len(combinations) == count:
            break

    if rejected:
        logger.warning("Discarded %d invalid %s game(s) from the model", rejected, variant.id)
    if len(combinations) < count:
        raise GenerationError(
            message=f"The model returned {len(combinations)} valid game(s), {count} requested",
            details={"valid": len(combinations), "rejected": rejected, "requested": count},
        )
    return combinations


class CombinationGenerator:
    """Combination generator backed by a LangChain chat model (Gemini by default)."""

    def __init__(
        self,
        model: Any | None = None,
        *,
        model_name: str = "gemini-2.5-flash",
        api_key: str | None = None,
    ) -> None:
        self._model = model
        self._model_name = model_name
        self._api_key = api_key

    @classmethod
    def from_config(cls, config: Any) -> CombinationGenerator:
        return cls(
            model_name=str(config.get("GENAI_MODEL") or "gemini-2.5-flash"),
            api_key=config.get("GOOGLE_API_KEY"),
        )

    def _chat_model(self) -> Any:
        if self._model is not None:
            return self._model
        if not self._api_key:
            raise ConfigurationError(message="GOOGLE_API_KEY is not set; cannot generate combinations")

        from langchain.chat_models import init_chat_model

        self._model = init_chat_model(
            f"google_genai:{self._model_name}",
            google_api_key=self._api_key,
            temperature=0.9,
        )
        return self._model

    def generate(self, variant: LotteryVariant, draws: Sequence[DrawResult], count: int) -> list[Combination]:
        if count < 1 or count > MAX_GAMES:
            raise ValidationError(
                message="Invalid count",
                details={"count": [f"Must be within 1..{MAX_GAMES}"]},
            )
        if not draws:
            raise ValidationError(
                message="No draws to analyze",
                details={"draws": ["At least one past draw is required"]},
            )

        model = self._chat_model()
        prompt = build_prompt(variant, draws, count)
        logger.info("Requesting %d %s game(s) from %s", count, variant.id, self._model_name)

        try:
            response = model.invoke(prompt)
        except Exception as exc:
            logger.exception("Chat model call failed")
            raise GenerationError(message=f"Chat model call failed: {exc}") from exc

        return parse_games(_response_text(response), variant, count)
