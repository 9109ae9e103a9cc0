"""
Main entry point for the Sliceflow package when executed as a module.

This allows running the package with `python -m sliceflow`.
"""

from sliceflow.cli import main

if __name__ == '__main__':
    main()
