"""Ingestion helpers.

Everything that turns raw backend documents into typed records and derived
map entities lives here, so the coordinator only deals with models.
"""
