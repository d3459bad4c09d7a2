"""CLI entry point for configuration introspection.

Usage:
    python -m scenecode.config
    python -m scenecode.config --check
    python -m scenecode.config --json
"""

from .introspection import main

if __name__ == "__main__":
    main()
