"""
Entry point for running the hygeia CLI as a module.

Usage: python -m hygeia.cli [command] [options]
"""

from hygeia.cli.parser import main

if __name__ == "__main__":
    main()
