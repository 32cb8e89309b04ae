[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "escope"
version = "0.1.0"
description = "Analyse Elasticsearch cluster responses: health, nodes, shards, indices, segments, GC and term vectors, with plain-text reports"
requires-python = ">=3.10"
dependencies = []
keywords = ["elasticsearch", "monitoring", "cluster", "shards", "diagnostics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["escope"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
