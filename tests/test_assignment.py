from datetime import timedelta

import pytest

from booking_service.assignment import find_alternatives, select_best
from booking_service.errors import NoCandidatesError
from booking_service.models import AvailabilitySlot

from tests.factories import NOW, add_painter, add_slot, at


class StubScorer:
    def __init__(self, scores):
        self.scores = scores
        self.calls = []

    async def score(self, db, provider, slot):
        self.calls.append(slot.id)
        return self.scores[slot.id]


class ExplodingScorer:
    async def score(self, db, provider, slot):
        raise AssertionError("scorer must not be consulted")


def _slot(slot_id, start, end):
    return AvailabilitySlot(id=slot_id, provider_id=f"painter-{slot_id}", start_time=start, end_time=end, reserved=False, version=1)


class TestSelectBest:
    async def test_no_candidates(self):
        with pytest.raises(NoCandidatesError):
            await select_best(None, [], ExplodingScorer())

    async def test_single_candidate_skips_scoring(self):
        only = _slot("a", at(10), at(14))
        assert await select_best(None, [only], ExplodingScorer()) is only

    async def test_highest_score_wins(self):
        early = _slot("early", at(8), at(14))
        late = _slot("late", at(10), at(14))
        scorer = StubScorer({"early": 12.0, "late": 19.5})

        assert await select_best(None, [early, late], scorer) is late
        assert sorted(scorer.calls) == ["early", "late"]

    async def test_tie_goes_to_earliest_start(self):
        later = _slot("later", at(10), at(14))
        earlier = _slot("earlier", at(9), at(14))
        scorer = StubScorer({"later": 14.5, "earlier": 14.5})

        assert await select_best(None, [later, earlier], scorer) is earlier

    async def test_tie_break_only_among_top_score(self):
        a = _slot("a", at(7), at(14))
        b = _slot("b", at(10), at(14))
        c = _slot("c", at(9), at(14))
        scorer = StubScorer({"a": 11.0, "b": 15.0, "c": 15.0})

        assert await select_best(None, [a, b, c], scorer) is c


class TestFindAlternatives:
    async def test_next_day_slot_is_offered(self, session_factory):
        painter = await add_painter(session_factory)
        slot = await add_slot(session_factory, painter, at(9, day=1), at(12, day=1))

        async with session_factory() as db:
            found = await find_alternatives(db, at(11), at(13))

        assert [s.id for s in found] == [slot.id]

    async def test_empty_when_nothing_qualifies(self, session_factory):
        painter = await add_painter(session_factory)
        await add_slot(session_factory, painter, at(9, day=1), at(10, day=1))  # too short
        await add_slot(session_factory, painter, at(9, day=3), at(17, day=3))  # outside window

        async with session_factory() as db:
            assert await find_alternatives(db, at(11), at(13)) == []

    async def test_ordered_by_distance_and_capped_at_five(self, session_factory):
        painter = await add_painter(session_factory)
        offsets = [-10, 7, -3, 1, 5, -6, 9]
        for hours in offsets:
            start = at(11) + timedelta(hours=hours)
            await add_slot(session_factory, painter, start, start + timedelta(hours=2))

        async with session_factory() as db:
            found = await find_alternatives(db, at(11), at(13))

        distances = [abs(s.start_time.replace(tzinfo=None) - at(11).replace(tzinfo=None)) for s in found]
        assert len(found) == 5
        assert distances == sorted(distances)
        assert distances[0] == timedelta(hours=1)
        assert all(s.end_time - s.start_time >= timedelta(hours=2) for s in found)

    async def test_window_is_configurable(self, session_factory):
        painter = await add_painter(session_factory)
        await add_slot(session_factory, painter, at(9, day=1), at(12, day=1))

        async with session_factory() as db:
            assert await find_alternatives(db, at(11), at(13), window_hours=6) == []

    async def test_not_before_drops_past_slots(self, session_factory):
        painter = await add_painter(session_factory)
        await add_slot(session_factory, painter, NOW - timedelta(hours=3), NOW - timedelta(hours=1))
        future = await add_slot(session_factory, painter, at(9), at(11))

        async with session_factory() as db:
            found = await find_alternatives(db, NOW + timedelta(hours=2), NOW + timedelta(hours=4), not_before=NOW)

        assert [s.id for s in found] == [future.id]
