"""Allow running as ``python -m clade``."""

from .cli import app

if __name__ == "__main__":
    app()
