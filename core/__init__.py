"""Shared runtime configuration."""
