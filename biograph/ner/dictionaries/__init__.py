"""Known-entity dictionaries shipped with biograph (YAML package data)."""
