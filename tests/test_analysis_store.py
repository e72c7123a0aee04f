from __future__ import annotations

from conftest import StubPredictionClient
from datastore.analysis_store import AnalysisStore
from services.aggregator import Aggregator
from services.analysis import AnalysisService


def _snapshot():
    client = StubPredictionClient()
    service = AnalysisService(client=client, store=AnalysisStore(), aggregator=Aggregator())
    return service.build_snapshot("locks.csv", client.body)


def test_store_holds_only_the_latest_snapshot() -> None:
    store = AnalysisStore()
    first, second = _snapshot(), _snapshot()

    store.put(first)
    store.put(second)

    assert store.current() is second
    assert store.get(second.analysis_id) is second
    assert store.get(first.analysis_id) is None


def test_clear_discards_snapshot() -> None:
    store = AnalysisStore()
    snapshot = _snapshot()
    store.put(snapshot)

    store.clear()

    assert store.current() is None
    assert store.get(snapshot.analysis_id) is None
