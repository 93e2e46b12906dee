"""
Entry point for running code_token_index as a module.

Usage: python -m code_token_index [args]
"""

from code_token_index.cli import main

if __name__ == "__main__":
    main()
