"""Main entry point for the crc_tickler package."""
from crc_tickler.cli import cli


def main():
    """Main entry point function."""
    cli()


if __name__ == "__main__":
    main()
