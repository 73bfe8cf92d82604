"""Use-cases around checking saved sets against draw results.

Reads a saved set, runs the pure rules of `loteria.services.reconciliation`
and writes the returned value back in one step.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from loteria.errors import ConfigurationError, InvalidWinningNumbers, NotFoundError
from loteria.repositories.saved_set_repository import SavedSetRepository
from loteria.services.reconciliation import (
    ResultLookup,
    advance_teimosinha,
    apply_conference,
    select_auto_check_candidates,
    undo_manual_conference,
)
from loteria.services.saved_sets import Provenance, SavedSet, TeimosinhaSavedSet
from loteria.variants import get_variant


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoCheckReport:
    examined: int
    updated: int
    ids: list[str] = field(default_factory=list)


class ConferenceService:
    """Manual checks, undo, and official-result polling."""

    def __init__(
        self,
        repository: SavedSetRepository | None = None,
        lookup: ResultLookup | None = None,
    ) -> None:
        self._repo = repository or SavedSetRepository()
        self._lookup = lookup

    def _get(self, session: Session | None, set_id: str) -> SavedSet:
        saved = self._repo.get(session, set_id)
        if saved is None:
            raise NotFoundError(message=f"Saved set {set_id} not found")
        return saved

    def _store(self, session: Session | None, updated: SavedSet) -> SavedSet:
        if not self._repo.replace(session, updated):
            raise NotFoundError(message=f"Saved set {updated.id} not found")
        return updated

    def manual_check(self, session: Session | None, set_id: str, numbers: Iterable[int]) -> SavedSet:
        saved = self._get(session, set_id)
        updated = apply_conference(saved, numbers, Provenance.MANUAL)
        logger.info("Manual conference stored for %s", set_id)
        return self._store(session, updated)

    def undo_manual_check(self, session: Session | None, set_id: str) -> SavedSet:
        saved = self._get(session, set_id)
        updated = undo_manual_conference(saved)
        if updated is saved:
            return saved
        logger.info("Manual conference removed from %s", set_id)
        return self._store(session, updated)

    def official_pass(self, saved: SavedSet) -> SavedSet:
        """Apply whatever official results are available now to one set."""

        if self._lookup is None:
            raise ConfigurationError(message="No draw result lookup configured")

        variant = get_variant(saved.variant_id)

        if isinstance(saved, TeimosinhaSavedSet):
            return advance_teimosinha(saved, self._lookup, variant=variant)

        if saved.conference is not None and saved.conference.provenance is Provenance.OFFICIAL:
            return saved

        try:
            result = self._lookup(variant, saved.target_contest)
        except Exception:
            logger.warning("Lookup failed for %s contest %s", variant.id, saved.target_contest, exc_info=True)
            return saved
        if result is None:
            logger.debug("Official result for %s contest %s not available yet", variant.id, saved.target_contest)
            return saved

        try:
            return apply_conference(saved, result.numbers, Provenance.OFFICIAL)
        except InvalidWinningNumbers as exc:
            logger.warning("Discarding malformed official result for contest %s: %s", result.contest, exc.message)
            return saved

    def refresh(self, session: Session | None, set_id: str) -> SavedSet:
        """On-view check of one set against official results."""

        saved = self._get(session, set_id)
        updated = self.official_pass(saved)
        if updated == saved:
            return saved
        if not self._repo.replace(session, updated):
            return saved
        logger.info("Official results applied to %s", set_id)
        return updated

    def auto_check_all(self, session: Session | None, max_workers: int = 4) -> AutoCheckReport:
        """Run an official-result pass over every eligible saved set.

        Lookups for different sets run concurrently; each set's own contests
        are still looked up one after another. Writes happen afterwards, on
        the calling thread.
        """

        candidates = select_auto_check_candidates(self._repo.load(session))
        if not candidates:
            return AutoCheckReport(examined=0, updated=0)

        with ThreadPoolExecutor(max_workers=max(1, int(max_workers))) as pool:
            results = list(pool.map(self.official_pass, candidates))

        updated_ids: list[str] = []
        for before, after in zip(candidates, results):
            if after == before:
                continue
            if self._repo.replace(session, after):
                updated_ids.append(after.id)

        logger.info("Auto-check examined %d set(s), updated %d", len(candidates), len(updated_ids))
        return AutoCheckReport(examined=len(candidates), updated=len(updated_ids), ids=updated_ids)
