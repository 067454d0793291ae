"""Allow ``python -m novu_init``."""

from .cli import main

main()
