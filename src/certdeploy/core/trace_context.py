"""Deployment id context variable for logging"""

import contextvars

# Identifies the deploy run that emitted a log line
deployment_id_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "deployment_id", default=None
)
