"""Work queue backends and worker."""

from taskflow.queue.base import JobProcessor, WorkQueue
from taskflow.queue.inmemory import InMemoryWorkQueue
from taskflow.queue.sql import SqlWorkQueue
from taskflow.queue.worker import QueueWorker

__all__ = [
    "InMemoryWorkQueue",
    "JobProcessor",
    "QueueWorker",
    "SqlWorkQueue",
    "WorkQueue",
]
