"""
Module: utils
Description: Package initialization for utility functions.

This package contains shared utility functions and helpers used
throughout the event pipeline.

Current utilities:
- logger: Structured logging configuration and helpers
- metrics: CloudWatch custom metrics publishing
- batch_helpers: Batch size validation
"""

__all__ = []
