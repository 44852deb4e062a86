"""Allow ``python -m release_tracker``."""

from .cli import main

main()
