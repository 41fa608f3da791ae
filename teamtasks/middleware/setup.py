"""
Middleware setup and configuration.
"""
from teamtasks.monitoring import MetricsMiddleware


def setup_middleware(app):
    """Set up all middleware for the FastAPI application."""
    # Must be added before routes so every request gets a request ID
    app.add_middleware(MetricsMiddleware)
