"""Adapters exposing the migration engine.

- orchestrator.py: MigrationService facade (correlation ids, envelopes, validation)
- server.py: Flask REST endpoints
"""
