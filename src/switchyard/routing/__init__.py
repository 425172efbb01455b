"""Routing — Express-style path templates and an append-only entry registry.

Entries are registered during setup through ``Router``/``App`` and read,
never mutated, while requests are served.
"""
