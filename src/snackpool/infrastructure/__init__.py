"""Infrastructure layer: database, repositories, and the pool handle.

This layer depends on stdlib, SQLAlchemy, and the domain layer.
It must never import from services, commands, or output.
"""
