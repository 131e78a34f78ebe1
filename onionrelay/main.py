"""
onion-relay Daemon Main Entry Point

Runs one node of the overlay:
- registry: the relay directory
- relay <id>: an onion router on base_relay_port + id
- user <id>: a sender/recipient on base_user_port + id
"""

import sys
import logging
import argparse
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from . import __version__
from .config import Config, DEFAULT_CONFIG_PATH
from .services.registry import create_registry_app
from .services.relay import RelayNode, create_relay_app
from .services.user import UserNode, create_user_app


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("onionrelayd")


def setup_logging(config: Config, verbose: bool = False) -> None:
    """Configure root logging from the config."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level)

    handlers = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def build_app(args: argparse.Namespace, config: Config):
    """
    Create the app for the requested role.

    Returns:
        Tuple of (app, port)
    """
    if args.role == "registry":
        return create_registry_app(config=config), config.network.registry_port

    if args.role == "relay":
        node = RelayNode(args.id, config)
        return create_relay_app(node, register_on_startup=True), node.address

    if args.role == "user":
        node = UserNode(args.id, config)
        return create_user_app(node), node.address

    raise ValueError(f"Unknown role: {args.role}")


def run(app: FastAPI, host: str, port: int, log_level: str) -> None:
    """Serve an app until SIGINT/SIGTERM (handled by uvicorn)."""
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="onion-relay node daemon")
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Configuration file path",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--inspect",
        action="store_true",
        help="Enable last-message inspection endpoints",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"onionrelayd {__version__}",
    )

    subparsers = parser.add_subparsers(dest="role", help="Node role")
    subparsers.add_parser("registry", help="Run the relay directory")

    relay_parser = subparsers.add_parser("relay", help="Run an onion router")
    relay_parser.add_argument("id", type=int, help="Relay number")

    user_parser = subparsers.add_parser("user", help="Run a user node")
    user_parser.add_argument("id", type=int, help="User number")

    args = parser.parse_args()

    if not args.role:
        parser.print_help()
        return 1

    # Load configuration
    try:
        config = Config.load(args.config)
        if args.inspect:
            config.debug.inspection = True
        config.validate()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config, args.verbose)
    logger.info(f"Starting onionrelayd v{__version__} ({args.role})")

    try:
        app, port = build_app(args, config)
        run(app, config.network.bind_host, port, "debug" if args.verbose else config.log_level)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        return 1

    logger.info("onionrelayd stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
