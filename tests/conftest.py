"""Shared fixtures: a controllable clock and in-memory persistence."""

from datetime import datetime, timedelta, timezone

import pytest

from pinlocal.core.geo import Coordinate
from pinlocal.core.report import Report, ReportCategory
from pinlocal.shell.clock import Clock
from pinlocal.shell.persistence import InMemoryStore, StateWriter


T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def writer(memory_store):
    return StateWriter(memory_store)


@pytest.fixture
def make_report():
    """Factory for reports created at T0 unless told otherwise."""
    def _make(
        report_id="r1",
        lat=40.0,
        lng=-74.0,
        category=ReportCategory.SAFETY,
        created_at=T0,
        text="Broken streetlight",
    ):
        return Report(
            id=report_id,
            location=Coordinate(lat, lng),
            text=text,
            language="en",
            category=category,
            created_at=created_at,
        )
    return _make
