"""Package entrypoint.

Allows running the CLI as:
  python -m ea_builder
"""

from .cli import main


if __name__ == "__main__":
    main()
