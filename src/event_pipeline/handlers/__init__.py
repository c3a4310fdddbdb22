"""
Module: handlers
Description: Package initialization for ingress handlers.

This package contains the FastAPI route handlers of the event pipeline:
- publisher: Event publish endpoint and the Publisher component

Handlers use dependency injection for the queue and publisher.
"""

__all__ = []
