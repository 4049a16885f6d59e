"""Run one refresh cycle from the command line and print the report as JSON."""

import argparse
import json
import logging

from app.core.config import settings
from app.core.log import configure_logging
from refresher.config import ConfigError, load_config, parse_mode
from refresher.cycle import CycleDriver

logger = logging.getLogger("cycle")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--page-id", type=int, action="append", help="limit the run to configured page ids")
    parser.add_argument("--mode", help="html, css or advisory-json")
    parser.add_argument("--language")
    parser.add_argument("--dry-run", action="store_true", default=None)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level, settings.log_file)
    try:
        config = load_config()
        driver = CycleDriver.from_config(config)
        mode = parse_mode(args.mode) if args.mode else None
    except ConfigError as exc:
        logger.critical("Invalid configuration: %s", exc)
        return 2

    targets = None
    if args.page_id:
        targets = [driver.find_target(page_id) for page_id in args.page_id]
        if None in targets:
            logger.critical("Unknown page id(s): %s", args.page_id)
            return 2

    report = driver.run(targets, mode=mode, language=args.language, dry_run=args.dry_run)
    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
