"""Infrastructure layer — template loading and filesystem output.

Depends on stdlib and third-party libs (Jinja2) only; it never imports
from domain, services, surfaces, commands or output.
"""
