"""
Rules package.

Defines the configuration rule model, the memoized matcher that finds the
rules applicable to a record, and the attachment engine that turns
matching rules into institution labels.

Modules of interest:
- models: ConfigRule, AttachmentCase and per-record results.
- matcher: ConfigMatcher, memoizing store lookups by source and collections.
- engine: AttachmentRuleEngine, with the fixed attachment case precedence.
"""
