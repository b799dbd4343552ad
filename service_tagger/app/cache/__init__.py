"""
Cache package for the ISIL Tagger.

Provides process-lifetime caches shared by all concurrent record
evaluations:

- singleflight: get-or-populate cache; concurrent requests for the same
  missing key wait for a single population.
- downloader: bounded-retry HTTP fetch with atomic writes to disk.
- holdings: KBART holdings files by link, cached on disk and in memory.
- allow_list: ISSN allow-lists loaded once per reference.
"""
