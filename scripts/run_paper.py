#!/usr/bin/env python3
"""
Paper trading launcher script.

This script launches the sniper in simulation mode using the paper.yaml configuration.
Launches are analysed and traded with simulated fills, so no funds are moved.
"""

import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sniper.runner.app import main


if __name__ == "__main__":
    try:
        sys.exit(
            asyncio.run(main(["--config", "configs/paper.yaml", "--profile", "paper"]))
        )
    except KeyboardInterrupt:
        print("\nPaper trading stopped by user.")
        sys.exit(0)
