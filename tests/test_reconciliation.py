from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from conftest import (
    DRAW_11_HITS,
    DRAW_12_HITS,
    DRAW_15_HITS,
    GAME_1_TO_15,
    GAME_9_HITS,
    DictLookup,
    make_plain,
    make_teimosinha,
)
from loteria.errors import ConferenceLocked, InvalidWinningNumbers, ValidationError
from loteria.services.reconciliation import (
    advance_teimosinha,
    apply_conference,
    combination_hits,
    compute_hits,
    conference_status,
    is_winner,
    select_auto_check_candidates,
    summarize_tiers,
    undo_manual_conference,
    validate_winning_numbers,
)
from loteria.services.saved_sets import (
    Combination,
    ConferenceStatus,
    ContestStatus,
    DrawResult,
    Provenance,
)
from loteria.variants import LOTOFACIL, MEGASENA

CHECKED_AT = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestComputeHits:
    def test_counts_intersection(self):
        game = Combination.create(GAME_1_TO_15, LOTOFACIL)
        assert compute_hits(game, DRAW_11_HITS) == 11

    def test_ignores_order(self):
        assert compute_hits([5, 3, 1], [1, 2, 3]) == compute_hits([1, 3, 5], [3, 2, 1]) == 2

    def test_repeated_winning_numbers_do_not_double_count(self):
        assert compute_hits([1, 2, 3], [1, 1, 1, 2]) == 2

    def test_no_overlap(self):
        assert compute_hits([1, 2, 3], [4, 5, 6]) == 0


class TestSummarizeTiers:
    def test_single_winner(self):
        games = [Combination.create(GAME_1_TO_15, LOTOFACIL)]
        assert summarize_tiers(games, DRAW_11_HITS, LOTOFACIL) == {11: 1}

    def test_non_tier_hits_leave_no_entry(self):
        games = [
            Combination.create(GAME_1_TO_15, LOTOFACIL),
            Combination.create(GAME_9_HITS, LOTOFACIL),
        ]
        assert summarize_tiers(games, DRAW_11_HITS, LOTOFACIL) == {11: 1}

    def test_losing_check_is_empty(self):
        games = [Combination.create(GAME_9_HITS, LOTOFACIL)]
        assert summarize_tiers(games, DRAW_11_HITS, LOTOFACIL) == {}

    def test_counts_several_winners_per_tier(self):
        games = [Combination.create(GAME_1_TO_15, LOTOFACIL)] * 2 + [
            Combination.create(DRAW_12_HITS, LOTOFACIL)
        ]
        assert summarize_tiers(games, DRAW_12_HITS, LOTOFACIL) == {12: 2, 15: 1}


class TestValidateWinningNumbers:
    def test_returns_sorted(self):
        assert validate_winning_numbers([6, 5, 4, 3, 2, 1], MEGASENA) == (1, 2, 3, 4, 5, 6)

    def test_wrong_count(self):
        with pytest.raises(InvalidWinningNumbers) as info:
            validate_winning_numbers(DRAW_11_HITS[:14], LOTOFACIL)
        assert info.value.details["expected_count"] == 15
        assert info.value.details["received_count"] == 14

    def test_names_duplicates_and_out_of_range(self):
        with pytest.raises(InvalidWinningNumbers) as info:
            validate_winning_numbers([1, 1, 2, 3, 4, 61], MEGASENA)
        details = info.value.details
        assert details["duplicates"] == [1]
        assert details["out_of_range"] == [61]
        assert details["numbers"] == [1, 1, 2, 3, 4, 61]
        assert info.value.code == "invalid_winning_numbers"

    def test_zero_is_out_of_range(self):
        with pytest.raises(InvalidWinningNumbers) as info:
            validate_winning_numbers([0, 1, 2, 3, 4, 5], MEGASENA)
        assert info.value.details["out_of_range"] == [0]


class TestApplyConference:
    def test_manual_check_records_summary(self):
        saved = make_plain(GAME_1_TO_15, GAME_9_HITS)
        updated = apply_conference(saved, DRAW_11_HITS, Provenance.MANUAL, now=CHECKED_AT)

        assert updated.conference is not None
        assert updated.conference.provenance is Provenance.MANUAL
        assert updated.conference.summary == {11: 1}
        assert updated.conference.winning_numbers == tuple(sorted(DRAW_11_HITS))
        assert updated.conference.checked_at == CHECKED_AT
        assert conference_status(updated) is ConferenceStatus.MANUALLY_CHECKED

    def test_does_not_mutate_input(self):
        saved = make_plain(GAME_1_TO_15)
        apply_conference(saved, DRAW_11_HITS, "manual")
        assert saved.conference is None

    def test_losing_check_still_records(self):
        saved = make_plain(GAME_9_HITS)
        updated = apply_conference(saved, DRAW_11_HITS, Provenance.OFFICIAL)
        assert updated.conference is not None
        assert updated.conference.summary == {}
        assert not is_winner(updated)

    def test_official_replaces_manual(self):
        saved = make_plain(GAME_1_TO_15)
        manual = apply_conference(saved, DRAW_11_HITS, Provenance.MANUAL)
        official = apply_conference(manual, DRAW_12_HITS, Provenance.OFFICIAL)

        assert official.conference.provenance is Provenance.OFFICIAL
        assert official.conference.winning_numbers == tuple(sorted(DRAW_12_HITS))
        assert official.conference.summary == {12: 1}
        assert conference_status(official) is ConferenceStatus.OFFICIALLY_CHECKED

    def test_manual_after_official_is_locked(self):
        saved = apply_conference(make_plain(GAME_1_TO_15), DRAW_11_HITS, Provenance.OFFICIAL)
        with pytest.raises(ConferenceLocked):
            apply_conference(saved, DRAW_12_HITS, Provenance.MANUAL)
        assert saved.conference.winning_numbers == tuple(sorted(DRAW_11_HITS))

    def test_locked_takes_precedence_over_bad_numbers(self):
        saved = apply_conference(make_plain(GAME_1_TO_15), DRAW_11_HITS, Provenance.OFFICIAL)
        with pytest.raises(ConferenceLocked):
            apply_conference(saved, [1, 2], Provenance.MANUAL)

    def test_new_official_result_replaces_official(self):
        saved = apply_conference(make_plain(GAME_1_TO_15), DRAW_11_HITS, Provenance.OFFICIAL)
        updated = apply_conference(saved, DRAW_15_HITS, Provenance.OFFICIAL)
        assert updated.conference.summary == {15: 1}

    def test_fourteen_numbers_rejected_and_set_unchanged(self):
        saved = make_plain(GAME_1_TO_15)
        before = replace(saved)
        with pytest.raises(InvalidWinningNumbers):
            apply_conference(saved, DRAW_11_HITS[:14], Provenance.MANUAL)
        assert saved == before

    def test_teimosinha_is_refused(self):
        with pytest.raises(ValidationError):
            apply_conference(make_teimosinha(), DRAW_11_HITS, Provenance.MANUAL)

    def test_combination_hits_follow_active_record(self):
        saved = make_plain(GAME_1_TO_15, GAME_9_HITS)
        assert list(combination_hits(saved)) == [None, None]
        updated = apply_conference(saved, DRAW_11_HITS, Provenance.MANUAL)
        assert list(combination_hits(updated)) == [11, 9]


class TestUndoManualConference:
    def test_removes_manual_record(self):
        saved = apply_conference(make_plain(GAME_1_TO_15), DRAW_11_HITS, Provenance.MANUAL)
        undone = undo_manual_conference(saved)
        assert undone.conference is None
        assert conference_status(undone) is ConferenceStatus.UNCHECKED

    def test_identity_without_record(self):
        saved = make_plain(GAME_1_TO_15)
        assert undo_manual_conference(saved) is saved

    def test_identity_with_official_record(self):
        saved = apply_conference(make_plain(GAME_1_TO_15), DRAW_11_HITS, Provenance.OFFICIAL)
        assert undo_manual_conference(saved) is saved

    def test_identity_for_teimosinha(self):
        saved = make_teimosinha()
        assert undo_manual_conference(saved) is saved


class TestAdvanceTeimosinha:
    def test_stops_at_first_unavailable_contest(self):
        saved = make_teimosinha(target_contest=100, contest_count=3)
        lookup = DictLookup({100: DRAW_11_HITS, 101: DRAW_15_HITS})

        updated = advance_teimosinha(saved, lookup)

        first, second, third = updated.records
        assert (first.status, first.hits) == (ContestStatus.CHECKED, 11)
        assert (second.status, second.hits) == (ContestStatus.CHECKED, 15)
        assert first.winning_numbers == tuple(sorted(DRAW_11_HITS))
        assert third.status is ContestStatus.PENDING
        assert third.hits is None
        assert lookup.calls == [100, 101, 102]
        assert is_winner(updated)

    def test_gap_free_after_lookup_failure(self):
        saved = make_teimosinha(target_contest=100, contest_count=3)
        lookup = DictLookup({100: DRAW_11_HITS, 102: DRAW_11_HITS}, failing={101})

        updated = advance_teimosinha(saved, lookup)

        assert [r.status for r in updated.records] == [
            ContestStatus.CHECKED,
            ContestStatus.PENDING,
            ContestStatus.PENDING,
        ]
        assert lookup.calls == [100, 101]

    def test_resumes_from_first_pending(self):
        saved = advance_teimosinha(make_teimosinha(), DictLookup({100: DRAW_11_HITS}))
        lookup = DictLookup({100: DRAW_15_HITS, 101: DRAW_12_HITS, 102: DRAW_11_HITS})

        updated = advance_teimosinha(saved, lookup)

        assert lookup.calls == [101, 102]
        assert [r.hits for r in updated.records] == [11, 12, 11]

    def test_fully_checked_set_is_unchanged(self):
        lookup = DictLookup({100: DRAW_11_HITS, 101: DRAW_11_HITS, 102: DRAW_11_HITS})
        done = advance_teimosinha(make_teimosinha(), lookup)

        again = advance_teimosinha(done, DictLookup({100: DRAW_15_HITS}))

        assert again is done

    def test_nothing_available_returns_same_value(self):
        saved = make_teimosinha()
        assert advance_teimosinha(saved, DictLookup()) is saved

    def test_result_for_another_contest_is_ignored(self):
        saved = make_teimosinha(target_contest=100, contest_count=2)

        def stale_lookup(variant, contest):
            return DrawResult(contest=99, numbers=tuple(DRAW_11_HITS))

        assert advance_teimosinha(saved, stale_lookup) is saved

    def test_does_not_mutate_input(self):
        saved = make_teimosinha()
        advance_teimosinha(saved, DictLookup({100: DRAW_11_HITS}))
        assert all(r.status is ContestStatus.PENDING for r in saved.records)

    def test_malformed_official_numbers_are_not_recorded(self):
        saved = make_teimosinha(target_contest=100, contest_count=3)

        def lookup(variant, contest):
            if contest == 100:
                return DrawResult(contest=100, numbers=tuple(DRAW_11_HITS))
            return DrawResult(contest=contest, numbers=(1, 2, 3, 99))

        updated = advance_teimosinha(saved, lookup)

        assert [r.status for r in updated.records] == [
            ContestStatus.CHECKED,
            ContestStatus.PENDING,
            ContestStatus.PENDING,
        ]
        assert updated.records[1].winning_numbers is None

    def test_malformed_first_contest_leaves_set_unchanged(self):
        saved = make_teimosinha()

        def lookup(variant, contest):
            return DrawResult(contest=contest, numbers=(1, 2, 3, 99))

        assert advance_teimosinha(saved, lookup) is saved

    def test_plain_set_is_refused(self):
        with pytest.raises(ValidationError):
            advance_teimosinha(make_plain(GAME_1_TO_15), DictLookup())

    def test_losing_contests_are_not_winners(self):
        updated = advance_teimosinha(
            make_teimosinha(contest_count=1), DictLookup({100: GAME_9_HITS[:9] + [16, 17, 18, 19, 20, 21]})
        )
        assert updated.records[0].hits == 9
        assert not is_winner(updated)


class TestSelectAutoCheckCandidates:
    def test_filters_by_record_provenance(self):
        unchecked = make_plain(GAME_1_TO_15, set_id="a")
        manual = apply_conference(make_plain(GAME_1_TO_15, set_id="b"), DRAW_11_HITS, Provenance.MANUAL)
        official = apply_conference(make_plain(GAME_1_TO_15, set_id="c"), DRAW_11_HITS, Provenance.OFFICIAL)
        teimosinha = make_teimosinha(set_id="d")
        finished = advance_teimosinha(
            make_teimosinha(set_id="e", contest_count=1), DictLookup({100: DRAW_11_HITS})
        )

        candidates = select_auto_check_candidates([unchecked, manual, official, teimosinha, finished])

        assert [c.id for c in candidates] == ["a", "b", "d", "e"]

    def test_empty(self):
        assert select_auto_check_candidates([]) == []
