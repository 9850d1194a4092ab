"""Tests for CancellationToken and Session snapshots."""

from __future__ import annotations

import asyncio

import pytest

from streamfinder.application.session import CancellationToken, Session
from streamfinder.domain.entities.candidate import Candidate
from streamfinder.domain.entities.errors import SearchCancelled
from streamfinder.domain.entities.session import SessionPhase


class TestCancellationToken:
    async def test_returns_result(self) -> None:
        async def work() -> int:
            return 7

        assert await CancellationToken(1).run(work()) == 7

    async def test_propagates_errors(self) -> None:
        async def work() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await CancellationToken(1).run(work())

    async def test_already_cancelled(self) -> None:
        token = CancellationToken(3)
        token.cancel()

        async def work() -> int:
            return 1

        with pytest.raises(SearchCancelled) as excinfo:
            await token.run(work())
        assert excinfo.value.epoch == 3

    async def test_cancel_while_waiting_cancels_inner(self) -> None:
        token = CancellationToken(2)
        started = asyncio.Event()
        inner_cancelled = False

        async def work() -> None:
            nonlocal inner_cancelled
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                inner_cancelled = True
                raise

        runner = asyncio.ensure_future(token.run(work()))
        await started.wait()
        token.cancel()

        with pytest.raises(SearchCancelled):
            await runner
        assert inner_cancelled is True
        assert token.cancelled is True

    async def test_cancel_waits_for_inner_cleanup(self) -> None:
        token = CancellationToken(4)
        started = asyncio.Event()
        steps: list[str] = []

        async def work() -> None:
            started.set()
            try:
                await asyncio.Event().wait()
            finally:
                await asyncio.sleep(0.01)
                steps.append("cleaned")

        runner = asyncio.ensure_future(token.run(work()))
        await started.wait()
        token.cancel()

        with pytest.raises(SearchCancelled):
            await runner
        assert steps == ["cleaned"]

    def test_raise_if_cancelled(self) -> None:
        token = CancellationToken(1)
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(SearchCancelled):
            token.raise_if_cancelled()


class TestSessionSnapshot:
    def test_snapshot_is_a_copy(self) -> None:
        session = Session(query="Show", token=CancellationToken(1))
        candidate = Candidate(source_key="a", source_name="A", title="Show")
        session.results["a"] = candidate

        snap = session.snapshot()
        session.results["b"] = Candidate(source_key="b", source_name="B", title="Show")

        assert snap.results == (candidate,)
        assert snap.phase is SessionPhase.SEARCHING
        assert snap.loading is True
        assert session.epoch == 1
