"""Analysis and text reporting for Elasticsearch cluster responses."""

__version__ = "0.1.0"