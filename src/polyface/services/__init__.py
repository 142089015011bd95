"""Service layer — analysis, conventions, dispatch, and composition.

Services may import from the domain layer.
They must never import from commands, output, or mcp.
"""
