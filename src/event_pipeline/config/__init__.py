"""
Package: config
Description: Environment-driven configuration for the event pipeline.
"""
