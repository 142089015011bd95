"""Domain layer — shapes, descriptors, naming, and the request context.

This layer depends only on stdlib and pydantic.
It must never import from services, surfaces, commands, or config.
"""
