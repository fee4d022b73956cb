"""Allow ``python -m flowviz``."""

from flowviz.cli import main

if __name__ == "__main__":
    main()
