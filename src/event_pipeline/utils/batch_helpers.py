"""
Module: batch_helpers.py
Description: Utility functions for batch operations.

Key Components:
- validate_batch_size(): Validate a requested batch size against queue limits

Dependencies: none
"""

MAX_BATCH_SIZE = 10


def validate_batch_size(batch_size: int, max_size: int = MAX_BATCH_SIZE) -> int:
    """
    Validate a requested batch size.

    Args:
        batch_size: Number of messages requested
        max_size: Maximum allowed batch size

    Returns:
        The validated batch size

    Raises:
        ValueError: If batch size is not an integer in [1, max_size]

    Example:
        >>> validate_batch_size(5)
        5
        >>> validate_batch_size(11)  # Raises ValueError
    """
    if isinstance(batch_size, bool) or not isinstance(batch_size, int):
        raise ValueError("batch_size must be an integer")
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    if batch_size > max_size:
        raise ValueError(f"batch size cannot exceed {max_size} items")
    return batch_size
