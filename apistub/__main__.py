"""Entry point: python -m apistub"""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
