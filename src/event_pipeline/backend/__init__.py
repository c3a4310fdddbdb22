"""
Package: backend
Description: Simulated downstream unit of work invoked by the consumer.
"""
