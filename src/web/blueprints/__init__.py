"""
Flask blueprints for the Arcane Odds web API.

- api: analysis, examples and host state endpoints
"""

from .api import api_bp

__all__ = ['api_bp']
