"""Run with ``python -m pboreader``."""
from pboreader.cli import cli

if __name__ == "__main__":
    cli()
