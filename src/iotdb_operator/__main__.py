"""Main entry point dispatcher for iotdb_operator commands."""

from iotdb_operator.cli.main import main


if __name__ == "__main__":
    main()
