"""Main entry point when executing bitrefill as a package.

This allows running the package using python -m bitrefill.
"""

from bitrefill.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
