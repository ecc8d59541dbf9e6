"""Domain layer — unit descriptors, lifecycle states, and diagnostics.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, plugins, commands, or config.
"""
