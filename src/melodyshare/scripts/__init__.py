"""Operational scripts for MelodyShare deployments."""
