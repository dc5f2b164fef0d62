"""pricetrack command line interface."""

from pricetrack.cli.main import app, create_app

__all__ = ["app", "create_app"]
