"""
Entry point for running credring as a module.

Usage:
    python -m credring [command] [options]
"""

from credring.cli import main

if __name__ == "__main__":
    main()
