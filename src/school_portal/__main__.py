# school_portal/__main__.py
# Entry point for ``python -m school_portal``; the commands live in cli.py.
from school_portal.cli import main

if __name__ == "__main__":
    main()
