# tests/property/__init__.py
"""Property-based tests for Basquiat.

Invariants that must hold for ALL bounds and source sizes, not just the
examples we think of: admission never exceeds the bound, every admitted
request settles exactly once, and the prefetch buffer never reorders.
"""
