# escope

Analysis and reporting helpers for Elasticsearch clusters. `escope` takes the
decoded JSON responses of an Elasticsearch client and turns them into
dataclasses and plain-text tables: cluster health and resource usage, node
load and balance, shard distribution and warnings, index rates, Lucene segment
memory, JVM garbage collection and document term vectors.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## The client

Every service takes a client object that follows the
`escope.stats.ElasticClient` protocol. It has these methods, each returning
decoded JSON:

- `get_cluster_health()`, `get_cluster_stats()`
- `get_nodes_info()`, `get_nodes_stats()`
- `get_indices()` and `get_shards()`, which return the rows of the cat
  indices and cat shards listings as a list of dicts
- `get_index_stats(index_name)`, where an empty name means all indices
- `get_termvectors(index_name, document_id, fields)`

Any exception the client raises is re-raised by the services as
`escope.util.EscopeError`. Fields that are missing or of an unexpected type in
a response are skipped and leave their defaults in place.

## Services

| Module | Service | Methods |
| --- | --- | --- |
| `escope.cluster` | `ClusterService` | `get_cluster_health()` → `ClusterInfo`, `get_cluster_stats()` → `ClusterStats` |
| `escope.nodes` | `NodeService` | `get_nodes_info()`, `get_node_stats()`, `get_node_breakdown()`, `analyze_node_balance()`, `get_node_health()` |
| `escope.shards` | `ShardService` | `get_all_shard_infos()`, `get_shard_distribution()`, `get_shard_warnings()` |
| `escope.indices` | `IndexService` | `get_all_index_infos()`, `get_lucene_stats()`, `get_index_detail_info(index_name)` |
| `escope.segments` | `SegmentsService` | `get_segments_info()` → list of `SegmentInfo` |
| `escope.lucene` | `LuceneService` | `get_lucene_stats()` → list of `LuceneStats` |
| `escope.gc` | `GCService` | `get_gc_info()`, `get_gc_info_for_node(node_name)` |
| `escope.termvectors` | `TermvectorsService` | `get_document_termvectors(index_name, document_id, fields)` → list of `TermInfo` |
| `escope.check` | `CheckService` | cluster, node, shard, index, resource, performance, node-role and segment checks |
| `escope.system` | `SystemService` | `get_system_indices()`, `get_system_shards()` |

Some behaviour worth knowing:

- `IndexService.get_index_detail_info` remembers the search and indexing
  totals of each index. On the first call for an index the rates read
  `calculating...`; later calls on the same service report the rate since the
  previous call.
- `GCService.get_gc_info_for_node` raises `EscopeError` when no node has the
  given name.
- `NodeService.analyze_node_balance` and `escope.shards.build_shard_warnings`
  flag shard spreads whose least/most loaded ratio falls below 0.8.
- `CheckService.get_segment_warnings_check` ignores system indices (see
  `escope.util.is_system_index`).

## Formatting

`escope.formatting.format_table(headers, rows)` draws a bordered text table;
`format_report(title, sections)` draws a boxed report from `ReportSection`
objects. Built on them:

- `escope.cluster.format_cluster_stats(stats)`
- `escope.gc.format_gc_table(gc_infos)` and `format_gc_details(gc_info)`
- `escope.indices.format_index_detail(info)` and `format_rate(rate)`
- `escope.termvectors.format_termvectors_table(term_infos)`,
  `format_term_search_result(term_infos, search_term)` and
  `format_summary(term_infos)`
- `escope.report.format_check_report(...)`, the full cluster check report built
  from the results of `CheckService`

## Example

```python
from escope.cluster import ClusterService, format_cluster_stats


class StubClient:
    def get_cluster_health(self):
        return {"cluster_name": "demo", "status": "green"}

    def get_cluster_stats(self):
        return {"indices": {"count": 3, "shards": {"total": 6, "primaries": 3}}}

    def get_nodes_stats(self):
        return {"nodes": {}}


service = ClusterService(StubClient())
print(format_cluster_stats(service.get_cluster_stats()))
```

## Utilities

`escope.util` holds the shared helpers: `format_bytes`, `parse_size`,
`format_docs_count`, `format_node_name`, `convert_shard_name`,
`get_string_field`, `is_system_index`, `calculate_percentage`,
`parse_percent_string` (raises `ValueError` on malformed input),
`sort_strings` with a `SortDirection`, and `sort_shards_by_type_and_index`,
which sorts shards in place with primaries first, then by index name.

## What the package does not do

- It does not connect to a cluster. There is no HTTP client; you supply an
  object that follows `ElasticClient`.
- It has no command-line program. It is a library to call from your own code.
- It keeps no configuration: no stored hosts, credentials or timeouts.
- It does not poll a cluster over time; each call reads the client once.