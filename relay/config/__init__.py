"""Relay configuration: YAML schema, loader and credential resolution."""
