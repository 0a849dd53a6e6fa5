"""Domain layer: money, identities, and request shapes.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
