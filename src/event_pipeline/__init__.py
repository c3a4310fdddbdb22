"""
Package: event_pipeline
Description: Queue-mediated event delivery pipeline.

A publisher normalizes inbound events into messages and enqueues them,
a consumer drains the queue in batches and forwards each message to a
backend through a synchronous invocation.
"""

__version__ = "1.0.0"
