from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
import requests

from loteria import create_app
from loteria.services.draw_result_service import DrawResultClient
from loteria.services.generator_service import CombinationGenerator
from loteria.services.saved_sets import (
    Combination,
    DrawResult,
    PlainSavedSet,
    TeimosinhaSavedSet,
)
from loteria.variants import LOTOFACIL

BASE_URL = "https://results.test/api"

# Lotofácil fixtures used across the suite.
GAME_1_TO_15 = list(range(1, 16))
DRAW_11_HITS = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 16, 17, 18, 19]
GAME_9_HITS = [1, 2, 3, 4, 5, 6, 7, 8, 9, 20, 21, 22, 23, 24, 25]
DRAW_15_HITS = list(range(1, 16))
DRAW_12_HITS = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 23, 24, 25]


class FakeResponse:
    def __init__(self, status_code: int, payload: object | None = None) -> None:
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> object:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeHttp:
    """Stands in for `requests.Session`, serving the results API shape."""

    def __init__(self) -> None:
        self.draws: dict[str, dict[int, list[int]]] = {}
        self.broken: set[tuple[str, str]] = set()
        self.calls: list[str] = []

    def add(self, api_name: str, contest: int, numbers: list[int]) -> None:
        self.draws.setdefault(api_name, {})[int(contest)] = list(numbers)

    def break_contest(self, api_name: str, contest: int | str) -> None:
        self.broken.add((api_name, str(contest)))

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.calls.append(url)
        api_name, tail = url.rstrip("/").split("/")[-2:]
        if (api_name, tail) in self.broken:
            raise requests.ConnectionError(f"boom: {url}")

        draws = self.draws.get(api_name, {})
        if tail == "latest":
            if not draws:
                return FakeResponse(404, {"message": "not found"})
            contest = max(draws)
        else:
            contest = int(tail)
            if contest not in draws:
                return FakeResponse(404, {"message": "not found"})

        return FakeResponse(
            200,
            {
                "loteria": api_name,
                "concurso": contest,
                "data": "01/02/2025",
                "dezenas": [f"{n:02d}" for n in draws[contest]],
            },
        )


class FakeChatMessage:
    def __init__(self, content: str) -> None:
        self.content = content


class FakeChatModel:
    def __init__(self, games: list[list[int]] | None = None, raw: str | None = None) -> None:
        self.games = games or []
        self.raw = raw
        self.prompts: list[str] = []

    def invoke(self, prompt: str) -> FakeChatMessage:
        self.prompts.append(prompt)
        if self.raw is not None:
            return FakeChatMessage(self.raw)
        return FakeChatMessage(json.dumps({"games": self.games}))


class DictLookup:
    """Result lookup backed by a dict; records the contests it was asked for."""

    def __init__(self, results: dict[int, list[int]] | None = None, failing: set[int] | None = None) -> None:
        self.results = dict(results or {})
        self.failing = set(failing or ())
        self.calls: list[int] = []

    def __call__(self, variant, contest: int) -> DrawResult | None:
        self.calls.append(int(contest))
        if contest in self.failing:
            raise requests.ConnectionError("network down")
        numbers = self.results.get(int(contest))
        if numbers is None:
            return None
        return DrawResult(contest=int(contest), numbers=tuple(sorted(numbers)))


def make_plain(*games: list[int], target_contest: int = 100, set_id: str = "saved-plain") -> PlainSavedSet:
    return PlainSavedSet(
        id=set_id,
        variant_id=LOTOFACIL.id,
        combinations=tuple(Combination.create(g, LOTOFACIL) for g in games),
        target_contest=target_contest,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


def make_teimosinha(
    game: list[int] | None = None,
    *,
    target_contest: int = 100,
    contest_count: int = 3,
    set_id: str = "saved-teimosinha",
) -> TeimosinhaSavedSet:
    return TeimosinhaSavedSet.start(
        id=set_id,
        variant_id=LOTOFACIL.id,
        combination=Combination.create(game or GAME_1_TO_15, LOTOFACIL),
        target_contest=target_contest,
        contest_count=contest_count,
        created_at=datetime(2025, 1, 2, tzinfo=timezone.utc),
    )


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def fake_model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def app(tmp_path, fake_http, fake_model):
    app = create_app(
        {
            "TESTING": True,
            "DB_BACKEND": "sql",
            "DATABASE_URL": f"sqlite:///{tmp_path / 'loteria-test.db'}",
            "AUTO_CHECK_ON_VIEW": False,
            "AUTO_CHECK_WORKERS": 2,
        }
    )
    app.extensions["draw_results"] = DrawResultClient(BASE_URL, http=fake_http)
    app.extensions["generator"] = CombinationGenerator(model=fake_model)
    yield app
    app.extensions["engine"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    with app.app_context():
        db = app.extensions["session_factory"]()
        try:
            yield db
            db.commit()
        finally:
            db.close()

