#!/usr/bin/env python3
"""
Main entry point for the cryptstrap tool.
"""
from cryptstrap.cli import main

if __name__ == "__main__":
    import sys
    sys.exit(main())
