"""Application pipeline – use-case middleware chain."""
from mp_eventstore.application.pipeline.middlewares import (
    CorrelationMiddleware,
    LoggingMiddleware,
    ValidationMiddleware,
)
from mp_eventstore.application.pipeline.pipeline import Handler, Middleware, Next, Pipeline
from mp_eventstore.application.pipeline.tenancy import (
    CorrelationRestoringMiddleware,
    TenantRestoringMiddleware,
    TenantStampingMiddleware,
)

__all__ = [
    "CorrelationMiddleware",
    "CorrelationRestoringMiddleware",
    "Handler",
    "LoggingMiddleware",
    "Middleware",
    "Next",
    "Pipeline",
    "TenantRestoringMiddleware",
    "TenantStampingMiddleware",
    "ValidationMiddleware",
]
