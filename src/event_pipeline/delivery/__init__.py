"""
Package: delivery
Description: Queue consumption and backend invocation.

Provides the batch consumer with all-or-nothing acknowledgment and the
synchronous transports it uses to reach the backend.
"""
