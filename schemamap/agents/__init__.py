"""Mapping agents."""
