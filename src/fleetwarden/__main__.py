"""Run the fleetwarden CLI with ``python -m fleetwarden``."""

from fleetwarden.cli import main

if __name__ == "__main__":
    main()
