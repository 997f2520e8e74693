"""Entry point for 'python -m datagate' command."""

from datagate.cli import main

if __name__ == "__main__":
    main()
