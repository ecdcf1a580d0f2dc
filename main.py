#!/usr/bin/env python3
"""TimeBank entry point.

Run with:
    python main.py status
    python -m timebank status
"""

from timebank.__main__ import main


if __name__ == "__main__":
    main()
