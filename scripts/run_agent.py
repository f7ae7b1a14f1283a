#!/usr/bin/env python3
"""
Interactive browser agent.

Usage:
    python scripts/run_agent.py
    python scripts/run_agent.py --headless --max-time 300
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from webpilot.cli import main


if __name__ == "__main__":
    sys.exit(main())
