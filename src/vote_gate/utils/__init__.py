"""Shared utilities: configuration, logging and data models."""
