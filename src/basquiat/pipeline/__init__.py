"""Bounded-concurrency write pipeline for member create-requests."""

from basquiat.pipeline.aggregator import CompletionAggregator, Counters
from basquiat.pipeline.dispatcher import Dispatcher, PipelineHandle, submit
from basquiat.pipeline.prefetch import PrefetchBuffer
from basquiat.pipeline.protocols import MemberWriter
from basquiat.pipeline.source import RequestSource
from basquiat.pipeline.window import AdmissionWindow
from basquiat.pipeline.worker_pool import WorkerPool

__all__ = [
    "AdmissionWindow",
    "CompletionAggregator",
    "Counters",
    "Dispatcher",
    "MemberWriter",
    "PipelineHandle",
    "PrefetchBuffer",
    "RequestSource",
    "WorkerPool",
    "submit",
]
