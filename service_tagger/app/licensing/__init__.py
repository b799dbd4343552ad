"""
Licensing package.

KBART holdings files describe which serials, and which year, volume and
issue ranges of them, an institution has licensed.

Modules of interest:
- models: Embargo, LicensingEntry and the ISSN indexed Holdings.
- kbart: Tab-delimited parser, including zip archives of KBART files.
- coverage: CoverageEvaluator, deciding whether an entry grants access.
"""
