#!/usr/bin/env python3
"""Allow ``python -m r2bridge``."""

from .cli import main

if __name__ == "__main__":
    main()
