"""Trace archive access, schema migration and event log ingestion."""
