"""Snapshot storage, rendering and resource resolution.

Kept import-free so the contracts package can import
``tracereplay.core.snapshot.nodes`` without a cycle.
"""
