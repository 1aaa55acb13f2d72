"""Local mock services used while exercising an environment."""

from .mercury import DEFAULT_MERCURY_V2_REPORT, create_app, serve

__all__ = ["DEFAULT_MERCURY_V2_REPORT", "create_app", "serve"]
