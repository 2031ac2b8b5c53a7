"""Entry point for running chainirc as a module.

This allows running: python -m chainirc
"""

from .cli import main

if __name__ == "__main__":
    main()
