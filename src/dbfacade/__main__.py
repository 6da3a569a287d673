"""Entry point for ``python -m dbfacade``."""

from .cli import main

if __name__ == "__main__":
    main()
