"""Logging, tracing and metrics for the TableFlow service."""

from tableflow_service.observability.config import configure_logging, setup_observability
from tableflow_service.observability.decorators import traced

__all__ = ["setup_observability", "configure_logging", "traced"]
