"""
Entry point for the bbr-setup CLI application.
"""

import sys

import click

from bbrsetup.cli.main import app


def main():
    """Main entry point. Every error, usage errors included, exits 1."""
    try:
        exit_code = app(standalone_mode=False)
    except click.exceptions.UsageError as e:
        print(f"ERROR    | {e.format_message()} Use --help for usage.", file=sys.stderr)
        sys.exit(1)
    except click.exceptions.Exit as e:
        sys.exit(e.exit_code)
    except (KeyboardInterrupt, click.exceptions.Abort):
        print("\nCancelled by user.", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
