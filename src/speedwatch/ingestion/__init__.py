"""Ingestion helpers.

Turns raw values from the configuration feed, the database and sample
sources into typed models and detector events.
"""
