"""
Basquiat: member service with a bounded-concurrency write pipeline.

Streams large volumes of member create-requests into a persistence backend
while bounding in-flight work, offloading blocking writes to a worker pool,
and containing per-item failures.
"""

__version__ = "0.1.0"
