import pytest

from escope.segments import SegmentInfo, SegmentsService
from escope.util import EscopeError


class _FakeClient:
    def __init__(self, stats=None, error=None):
        self.stats = stats
        self.error = error
        self.requested = []

    def get_index_stats(self, index_name):
        self.requested.append(index_name)
        if self.error is not None:
            raise self.error
        return self.stats


def test_segments_are_parsed():
    client = _FakeClient(
        {
            "indices": {
                "logs": {"total": {"segments": {"count": 3.0, "memory_in_bytes": 2048}}},
                "metrics": {"total": {"indexing": {}}},
                "broken": "value",
            }
        }
    )
    result = SegmentsService(client).get_segments_info()
    assert result == [SegmentInfo("logs", 3, 2048)]
    assert client.requested == [""]


def test_missing_numbers_default_to_zero():
    client = _FakeClient({"indices": {"a": {"total": {"segments": {"count": "x"}}}}})
    assert SegmentsService(client).get_segments_info() == [SegmentInfo("a", 0, 0)]


def test_empty_response():
    assert SegmentsService(_FakeClient({})).get_segments_info() == []


def test_client_error_is_wrapped():
    cause = RuntimeError("down")
    with pytest.raises(EscopeError) as info:
        SegmentsService(_FakeClient(error=cause)).get_segments_info()
    assert info.value.__cause__ is cause
    assert "down" in str(info.value)