#!/usr/bin/env python
"""Command-line entry point for the Paradocks notifications backend."""
import os
import sys

from paradocks_backend.env import load_env


def main():
    load_env()
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "paradocks_backend.settings")
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
