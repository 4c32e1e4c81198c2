"""Logging setup for the interaction pipeline."""
