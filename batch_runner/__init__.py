"""Batch job submission, polling and result retrieval client."""

__version__ = "1.0.0"
