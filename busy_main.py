"""Busy - personal time tracker with local-first sync."""

from busy_core.cli import app, main

__all__ = ["app", "main"]


if __name__ == "__main__":
    main()
