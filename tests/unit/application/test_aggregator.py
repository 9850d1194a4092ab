"""Tests for ResultAggregator."""

from __future__ import annotations

from dataclasses import replace

from streamfinder.application.aggregator import MergeMode, ResultAggregator
from streamfinder.application.session import CancellationToken, Session
from streamfinder.domain.entities.candidate import Candidate


def _cand(source: str, title_id: str = "1") -> Candidate:
    return Candidate(source_key=source, source_name=source, title="Show", title_id=title_id)


def _session() -> Session:
    return Session(query="Show", token=CancellationToken(1))


class TestReplace:
    def test_batch_becomes_result_set(self) -> None:
        session = _session()
        agg = ResultAggregator()
        agg.merge(session, [_cand("a")], MergeMode.APPEND)

        added = agg.merge(session, [_cand("b"), _cand("c")], MergeMode.REPLACE)

        assert list(session.results) == ["b", "c"]
        assert [c.source_key for c in added] == ["b", "c"]

    def test_first_duplicate_wins(self) -> None:
        session = _session()
        first = _cand("a", "first")

        ResultAggregator().merge(
            session, [first, _cand("a", "second")], MergeMode.REPLACE
        )

        assert list(session.results.values()) == [first]
        assert session.results["a"] is first

    def test_selection_reset_when_replaced(self) -> None:
        session = _session()
        agg = ResultAggregator()
        agg.merge(session, [_cand("a")], MergeMode.REPLACE)

        agg.merge(session, [_cand("b")], MergeMode.REPLACE)

        assert session.detail is not None
        assert session.detail.source_key == "b"


class TestAppend:
    def test_existing_candidates_stay_identical(self) -> None:
        session = _session()
        agg = ResultAggregator()
        original = _cand("a", "orig")
        agg.merge(session, [original], MergeMode.APPEND)

        added = agg.merge(
            session, [_cand("a", "dup"), _cand("b")], MergeMode.APPEND
        )

        assert session.results["a"] is original
        assert list(session.results) == ["a", "b"]
        assert [c.source_key for c in added] == ["b"]

    def test_source_keys_stay_unique(self) -> None:
        session = _session()
        agg = ResultAggregator()
        for batch in ([_cand("a"), _cand("b")], [_cand("b"), _cand("c")], [_cand("a")]):
            agg.merge(session, batch, MergeMode.APPEND)

        keys = [c.source_key for c in session.results.values()]
        assert keys == ["a", "b", "c"]
        assert len(set(keys)) == len(keys)

    def test_first_candidate_is_selected(self) -> None:
        session = _session()
        agg = ResultAggregator()
        agg.merge(session, [_cand("a")], MergeMode.APPEND)
        agg.merge(session, [_cand("b")], MergeMode.APPEND)

        assert session.detail is session.results["a"]

    def test_empty_batch_selects_nothing(self) -> None:
        session = _session()
        assert ResultAggregator().merge(session, [], MergeMode.APPEND) == []
        assert session.detail is None


class TestRefresh:
    def test_replaces_in_place_and_moves_selection(self) -> None:
        session = _session()
        agg = ResultAggregator()
        agg.merge(session, [_cand("a"), _cand("b")], MergeMode.APPEND)
        enriched = replace(session.results["a"], resolution="1080p")

        assert agg.refresh(session, enriched) is True

        assert list(session.results) == ["a", "b"]
        assert session.results["a"] is enriched
        assert session.detail is enriched

    def test_unknown_source(self) -> None:
        session = _session()
        assert ResultAggregator().refresh(session, _cand("zzz")) is False
        assert session.results == {}
