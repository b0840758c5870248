"""Test infrastructure for Basquiat pipelines.

- latency_store: fake member store with latency and failure injection,
  used by the test suite and by ``basquiat load --target simulated``
"""

from basquiat.testing.latency_store import LatencyMemberStore

__all__ = ["LatencyMemberStore"]
