"""Allow ``python -m prefixagg``."""

from prefixagg.cli import main

if __name__ == "__main__":
    main()
