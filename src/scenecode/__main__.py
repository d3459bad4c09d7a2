"""Allow ``python -m scenecode``."""

from scenecode.cli import main

if __name__ == "__main__":
    main()
