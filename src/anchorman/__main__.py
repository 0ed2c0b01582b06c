"""Allow ``python -m anchorman``."""

from anchorman.cli import main

main()
