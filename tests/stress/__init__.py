# tests/stress/__init__.py
"""Stress tests for the Basquiat write pipeline.

These tests drain 100K create-requests to verify the concurrency bounds
hold at full size. Deselect them with ``pytest -m "not stress"``.
"""
