from escope.stats import (
    get_indexing_data,
    get_segments_data,
    parse_index_stats_data,
)


def test_parse_index_stats_data_keeps_dict_totals():
    total_a = {"segments": {"count": 1}}
    stats = {
        "indices": {
            "a": {"total": total_a},
            "b": {"primaries": {}},
            "c": "broken",
            "d": {"total": 5},
        }
    }
    assert parse_index_stats_data(stats) == {"a": total_a}


def test_parse_index_stats_data_without_indices():
    assert parse_index_stats_data({}) == {}
    assert parse_index_stats_data({"indices": []}) == {}


def test_get_segments_data():
    segments = {"count": 2}
    assert get_segments_data({"segments": segments}) is segments
    assert get_segments_data({"segments": 3}) is None
    assert get_segments_data({}) is None


def test_get_indexing_data():
    indexing = {"index_total": 4}
    assert get_indexing_data({"indexing": indexing}) is indexing
    assert get_indexing_data({}) is None