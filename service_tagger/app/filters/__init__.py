"""
Filter based tagging.

A simpler alternative to the configuration store driven engine: every
institution has a list of predicates, and the institution is attached if
any of them matches. No external store is needed, which makes this path
useful for small deployments and for testing.
"""
