#!/usr/bin/env python

"""
WorkTimer - Main Entry Point

Time tracking core of the business-operations app: a REST API for the
per-user active timer and a desktop Timer Widget that talks to it.

Usage:
    python main.py serve      # run the API
    python main.py widget     # open the Timer Widget
    python main.py init-db    # create the tables

Requirements:
    - Python 3.10+
    - See pyproject.toml for dependencies
"""

import argparse
import asyncio
import logging
import sys

from worktimer.infra.config import get_settings


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(prog="worktimer", description="Time tracking service")
    parser.add_argument("command", choices=["serve", "widget", "init-db"], nargs="?", default="serve")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        from worktimer.api import run_server
        run_server(settings)
        return 0

    if args.command == "widget":
        from worktimer.ui import run_widget
        return run_widget(settings)

    from worktimer.infra.db import init_db
    asyncio.run(init_db(settings.get_db_url()))
    logging.getLogger(__name__).info(f"Database ready at {settings.get_db_url()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
