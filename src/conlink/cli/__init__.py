"""conlink command line interface."""

from conlink.cli.app import app

__all__ = ["app"]
