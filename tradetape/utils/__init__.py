"""
Utility functions module.

Time Semantics:
- observed_at is an integer of epoch milliseconds
- A trade without a feed timestamp is stamped with the local receipt time
- Components take an injectable clock so receipt stamping is deterministic in tests
"""
