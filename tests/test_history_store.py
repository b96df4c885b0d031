from mobile.liondetect.models import DetectionResult
from mobile.liondetect.store.history_store import HistoryLedger


def _result(chunk_id: int) -> DetectionResult:
    return DetectionResult(chunk_id=chunk_id, ai_percent=chunk_id * 1.5, real_percent=0.0, is_ai=False)


def test_capacity_and_most_recent_first():
    ledger = HistoryLedger(capacity=3)
    for chunk_id in range(1, 8):
        ledger.push(_result(chunk_id))
        assert len(ledger) <= 3
    assert [r.chunk_id for r in ledger.list()] == [7, 6, 5]
    assert ledger.latest().chunk_id == 7


def test_entries_survive_reload(tmp_path):
    path = tmp_path / "history.json"
    ledger = HistoryLedger(capacity=5, path=path)
    ledger.push(_result(1))
    ledger.push(_result(2))

    reloaded = HistoryLedger(capacity=1, path=path)
    assert [r.chunk_id for r in reloaded.list()] == [2]
    assert reloaded.list()[0].ai_percent == 3.0


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")
    assert len(HistoryLedger(capacity=5, path=path)) == 0
