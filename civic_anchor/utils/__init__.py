"""Shared utilities: error taxonomy, log masking, logging setup, time."""
