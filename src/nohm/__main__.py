"""Main entry point for nohm."""

from nohm.cli.main import cli

if __name__ == "__main__":
    cli()
