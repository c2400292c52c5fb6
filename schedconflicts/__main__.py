"""
Package entry point.

Allows running the application via:

    python -m schedconflicts

This simply forwards execution to schedconflicts.cli.main().
"""

from schedconflicts.cli import main

if __name__ == "__main__":
    main()
