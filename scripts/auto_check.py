"""Run the official-result check from the command line.

Usage:
  python scripts/auto_check.py --once
  python scripts/auto_check.py --interval 1800
"""

from __future__ import annotations

from loteria.auto_check import main


if __name__ == "__main__":
    raise SystemExit(main())
