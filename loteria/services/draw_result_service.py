"""Client for the public Caixa lottery results API.

Endpoints used (`base` defaults to loteriascaixa-api):
  GET {base}/{api_name}/latest
  GET {base}/{api_name}/{contest}

Payload fields read: `concurso` (int), `dezenas` (zero-padded strings) and
`data` (draw date, optional).
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from loteria.errors import UpstreamError
from loteria.services.saved_sets import DrawResult
from loteria.variants import LotteryVariant


logger = logging.getLogger(__name__)

LATEST = "latest"


def _build_http_session(retries: int, backoff_factor: float) -> requests.Session:
    """Create a requests session with retry/backoff for transient network errors."""

    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry, pool_connections=10, pool_maxsize=10)

    session = requests.Session()
    session.headers.update({"User-Agent": "Mozilla/5.0", "Accept": "application/json"})
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def parse_draw_payload(payload: Any) -> DrawResult | None:
    """Turn an API payload into a `DrawResult`, or None when it has no draw."""

    if not isinstance(payload, dict):
        return None

    contest = payload.get("concurso")
    numbers = payload.get("dezenas")
    if contest is None or not isinstance(numbers, list) or not numbers:
        return None

    try:
        parsed = tuple(sorted(int(str(d).strip()) for d in numbers))
        contest_no = int(contest)
    except (TypeError, ValueError):
        logger.warning("Malformed draw payload for contest %r: %r", contest, numbers)
        return None

    draw_date = payload.get("data")
    return DrawResult(
        contest=contest_no,
        numbers=parsed,
        draw_date=str(draw_date) if draw_date else None,
    )


class DrawResultClient:
    """Look up official draw results; any failure reads as "not available"."""

    def __init__(
        self,
        base_url: str = "https://loteriascaixa-api.herokuapp.com/api",
        *,
        timeout_seconds: float = 10.0,
        retries: int = 2,
        backoff_factor: float = 0.5,
        http: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._retries = retries
        self._backoff_factor = backoff_factor
        self._shared_http = http
        self._local = threading.local()

    @classmethod
    def from_config(cls, config: Any) -> DrawResultClient:
        return cls(
            str(config.get("LOTTERY_API_BASE_URL")),
            timeout_seconds=float(config.get("LOTTERY_API_TIMEOUT", 10.0)),
            retries=int(config.get("LOTTERY_API_RETRIES", 2)),
            backoff_factor=float(config.get("LOTTERY_API_BACKOFF", 0.5)),
        )

    def _session(self) -> requests.Session:
        """Injected session, or one `requests.Session` per calling thread."""

        if self._shared_http is not None:
            return self._shared_http
        session = getattr(self._local, "session", None)
        if session is None:
            session = _build_http_session(self._retries, self._backoff_factor)
            self._local.session = session
        return session

    def _get(self, path: str) -> Any | None:
        url = f"{self._base_url}/{path}"
        try:
            resp = self._session().get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            return None

        if resp.status_code == 404:
            logger.debug("No result at %s", url)
            return None
        if not resp.ok:
            logger.warning("Results API answered %s for %s", resp.status_code, url)
            return None

        try:
            return resp.json()
        except ValueError:
            logger.warning("Results API returned non-JSON body for %s", url)
            return None

    def lookup(self, variant: LotteryVariant, contest: int | str = LATEST) -> DrawResult | None:
        """Official numbers for `contest` (or the latest one), None if not available."""

        path = f"{variant.api_name}/{LATEST if contest == LATEST else int(contest)}"
        result = parse_draw_payload(self._get(path))
        if result is None:
            return None
        if contest != LATEST and result.contest != int(contest):
            logger.debug("Asked for %s contest %s, got %s", variant.id, contest, result.contest)
            return None
        return result

    def __call__(self, variant: LotteryVariant, contest: int) -> DrawResult | None:
        return self.lookup(variant, contest)

    def next_contest(self, variant: LotteryVariant) -> int:
        latest = self.lookup(variant, LATEST)
        if latest is None:
            raise UpstreamError(message=f"Could not fetch the latest {variant.name} result")
        return latest.contest + 1

    def recent_draws(self, variant: LotteryVariant, count: int) -> list[DrawResult]:
        """Latest `count` draws, newest first.

        Contests are fetched one by one since the bulk endpoint is unreliable;
        missing ones are skipped.
        """

        if count < 1:
            raise ValueError("count must be positive")

        latest = self.lookup(variant, LATEST)
        if latest is None:
            raise UpstreamError(message=f"Could not fetch the latest {variant.name} result")

        draws = [latest]
        for contest in range(latest.contest - 1, max(latest.contest - count, 0), -1):
            draw = self.lookup(variant, contest)
            if draw is None:
                logger.warning("Skipping %s contest %s (not available)", variant.id, contest)
                continue
            draws.append(draw)

        return sorted(draws, key=lambda d: d.contest, reverse=True)
