"""
Execution helpers that bound how long a blocking collaborator may run.
"""

from .call_guard import CallBusyError, CallGuard, CallGuardConfig, CallTimeoutError

__all__ = [
    "CallBusyError",
    "CallGuard",
    "CallGuardConfig",
    "CallTimeoutError",
]
