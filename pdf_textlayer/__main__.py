"""Entry point for running pdf_textlayer as a module.

Usage:
    python -m pdf_textlayer <command> [options]
"""
from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
