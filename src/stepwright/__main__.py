"""Allow ``python -m stepwright``."""

from stepwright.cli import app

if __name__ == "__main__":
    app()
