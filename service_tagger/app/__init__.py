"""
ISIL Tagger package.

This package decides which subscribing institutions (ISIL) may see a
bibliographic record and attaches their identifiers to the record. It
provides:

- app.main: command line entry points.
- app.stream: newline-delimited JSON stream processing.
- app.rules: configuration matching and the attachment rule engine.
- app.licensing: KBART holdings parsing and coverage evaluation.
- app.cache: single-flight caches for holdings files and allow-lists.
- app.persistence: the read-only SQLite configuration store.
- app.filters: the predicate based tagger for simple deployments.

Guidelines:
- Per-record evaluation is side-effect free apart from cache population.
- Rule evaluation must be deterministic; labels are always sorted.
"""

__version__ = "0.1.0"
