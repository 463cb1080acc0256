#!/usr/bin/env python3
"""
run_touchpoint.py: config-driven launcher
Uses touchpoint_config.json. Run from project root.

  python run_touchpoint.py           # live list, redrawn at each local midnight
  python run_touchpoint.py --api     # start API server

Config is created on first save or manually; defaults apply when missing.
"""

import argparse
import logging
import sys
from pathlib import Path


def watch_argv(config: dict) -> list:
    """CLI arguments for `watch`, taken from the project-root config."""
    argv = ["--db", str(config["db_path"])]
    if config.get("timezone"):
        argv += ["--timezone", config["timezone"]]
    return argv + ["watch", "--poll-interval", str(config["poll_interval_seconds"])]


def main():
    parser = argparse.ArgumentParser(description="Touchpoint automated launcher")
    parser.add_argument("--api", action="store_true", help="Start API server")
    parser.add_argument("--init-config", action="store_true",
                        help="Write touchpoint_config.json with current values and exit")
    args = parser.parse_args()

    root = Path(__file__).parent
    sys.path.insert(0, str(root))

    from touchpoint.config import ensure_config, resolve_timezone, save_config

    config = ensure_config(root)
    tz = resolve_timezone(config.get("timezone"))
    db_path = Path(config["db_path"])

    if args.init_config:
        path = save_config(config, root)
        print(f"Config written to {path}")
        return

    if args.api:
        logging.basicConfig(
            level   = logging.INFO,
            format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt = '%H:%M:%S',
        )
        from touchpoint.api import serve
        print(f"Starting API at http://{config['api_host']}:{config['api_port']}")
        serve(db_path, host=config["api_host"], port=int(config["api_port"]), tz=tz)
        return

    from touchpoint.cli import main as cli_main
    cli_main(watch_argv(config))

if __name__ == "__main__":
    main()
