"""Allow `python -m instabridge`."""

from instabridge.cli.commands import app

if __name__ == "__main__":
    app()
