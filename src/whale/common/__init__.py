"""Shared models, configuration and exceptions."""
