"""
Core utilities shared across the marketplace package.

This package hosts configuration, logging setup, credential hashing and small
helpers. Services depend on these primitives instead of reading the
environment or hashing passwords themselves.
"""
