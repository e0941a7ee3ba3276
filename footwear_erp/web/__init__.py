"""Web interface for the footwear production tracker."""

from .app import create_app

__all__ = ["create_app"]
