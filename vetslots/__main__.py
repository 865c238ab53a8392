"""
Convenience entry point for running vetslots as a module.

Usage: python -m vetslots [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
