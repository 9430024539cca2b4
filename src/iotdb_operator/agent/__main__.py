"""Run the operator agent: python -m iotdb_operator.agent [CONFIG]."""

import asyncio
import sys
from pathlib import Path

from iotdb_operator.agent.main import run_agent
from iotdb_operator.errors import OperatorError


def main():
    """Run the operator agent with an optional config file argument."""
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    try:
        asyncio.run(run_agent(config_path))
    except KeyboardInterrupt:
        print("\nOperator shutdown requested")
        sys.exit(0)
    except (OperatorError, FileNotFoundError) as e:
        print(f"Operator error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
