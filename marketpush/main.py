"""
Main application entry point.
"""

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from marketpush.app import MarketPushApp
from marketpush.config import ConfigValidationError, load_config

logger = logging.getLogger(__name__)

JOB_NAMES = ("price-alerts", "market-movers", "market-news", "daily-recap")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MarketPush notification jobs")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run one job pass")
    run_parser.add_argument("job", choices=JOB_NAMES, help="Job to run")
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Run without sending notifications"
    )

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP trigger API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument(
        "--dry-run", action="store_true", help="Run without sending notifications"
    )

    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Setup logging
    level_name = "DEBUG" if args.debug else config.advanced.log_level.upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.dry_run:
        logger.info("Dry run mode - no notifications will be sent")

    try:
        app = MarketPushApp(config, dry_run=args.dry_run)
    except ConfigValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.command == "serve":
        import uvicorn

        from marketpush.api import create_app

        uvicorn.run(create_app(app), host=args.host, port=args.port)
        app.close()
        return 0

    result = app.run_job(args.job)
    app.close()

    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
