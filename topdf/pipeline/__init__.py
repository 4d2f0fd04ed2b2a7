from .batch import (
    CANCELLED,
    BatchScheduler,
    BatchSession,
    ConversionJob,
    JobStatus,
    StatusEvent,
    cancel,
    get_scheduler,
    submit,
    subscribe,
)

__all__ = [
    "CANCELLED",
    "BatchScheduler",
    "BatchSession",
    "ConversionJob",
    "JobStatus",
    "StatusEvent",
    "cancel",
    "get_scheduler",
    "submit",
    "subscribe",
]
