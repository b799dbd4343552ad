"""
Persistence package.

Holds the read-only configuration store the attachment rules come from.
"""
