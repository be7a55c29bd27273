"""Adaptive schema mapping engine.

Maps the columns of arbitrary tabular input onto a canonical specification
schema, gates uncertain mappings for human review, and learns from user
corrections.
"""

__version__ = "0.1.0"
