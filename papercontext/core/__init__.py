"""Core models, configuration and utilities."""
