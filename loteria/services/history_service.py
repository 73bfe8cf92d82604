"""Service layer for saving and browsing generated combinations."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from loteria.errors import NotFoundError, ValidationError
from loteria.repositories.saved_set_repository import SavedSetRepository
from loteria.services.saved_sets import (
    Combination,
    PlainSavedSet,
    SavedSet,
    TeimosinhaSavedSet,
    new_saved_set_id,
    utcnow,
)
from loteria.variants import get_variant


logger = logging.getLogger(__name__)


class HistoryService:
    """Saved set use-cases (create, list, get, delete)."""

    def __init__(self, repository: SavedSetRepository | None = None) -> None:
        self._repo = repository or SavedSetRepository()

    def save_generated(
        self,
        session: Session | None,
        variant_id: str,
        combinations: Iterable[Iterable[int]],
        target_contest: int,
        teimosinha_contests: int | None = None,
    ) -> SavedSet:
        """Store combinations as a plain set, or as a teimosinha when
        `teimosinha_contests` is given. The mode cannot change afterwards.
        """

        variant = get_variant(variant_id)
        games = tuple(Combination.create(c, variant) for c in combinations)
        if not games:
            raise ValidationError(
                message="Nothing to save",
                details={"combinations": ["At least one combination is required"]},
            )
        if int(target_contest) < 1:
            raise ValidationError(
                message="Invalid target contest",
                details={"target_contest": ["Must be >= 1"]},
            )

        if teimosinha_contests is None:
            saved: SavedSet = PlainSavedSet(
                id=new_saved_set_id(),
                variant_id=variant.id,
                combinations=games,
                target_contest=int(target_contest),
                created_at=utcnow(),
            )
        else:
            if len(games) != 1:
                raise ValidationError(
                    message="Invalid teimosinha",
                    details={"combinations": ["A teimosinha must hold exactly one combination"]},
                )
            saved = TeimosinhaSavedSet.start(
                id=new_saved_set_id(),
                variant_id=variant.id,
                combination=games[0],
                target_contest=int(target_contest),
                contest_count=int(teimosinha_contests),
            )

        self._repo.add(session, saved)
        logger.info("Saved %s set %s (%d game(s)) for %s contest %s",
                    saved.kind, saved.id, len(games), variant.id, saved.target_contest)
        return saved

    def list_sets(self, session: Session | None) -> Sequence[SavedSet]:
        return self._repo.load(session)

    def get_set(self, session: Session | None, set_id: str) -> SavedSet:
        saved = self._repo.get(session, set_id)
        if saved is None:
            raise NotFoundError(message=f"Saved set {set_id} not found")
        return saved

    def delete_set(self, session: Session | None, set_id: str) -> None:
        if not self._repo.delete(session, set_id):
            raise NotFoundError(message=f"Saved set {set_id} not found")
        logger.info("Deleted saved set %s", set_id)
