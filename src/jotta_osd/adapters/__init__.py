"""Adapters for the object store."""
