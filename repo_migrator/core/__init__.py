"""Core infrastructure: settings, logging, errors and process helpers."""
