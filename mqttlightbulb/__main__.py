"""
Main entry point for the mqttlightbulb command.

Usage:
    python -m mqttlightbulb --config accessories.yaml [options]
"""

import argparse
import logging
import signal
import sys

from pyhap.accessory_driver import AccessoryDriver

from . import __version__, create_lightbulb_bridge
from .config_loader import PINCODE_PATTERN, load_config
from .homekit import build_homekit_bridge


def setup_logging(log_level: str = "info") -> logging.Logger:
    """Configure logging to console with appropriate level."""
    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }
    level = level_map.get(log_level.lower(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(asctime)s - %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("mqttlightbulb")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MQTT Lightbulb - expose MQTT lights to HomeKit"
    )
    parser.add_argument(
        "--config", required=True, help="Path to accessories YAML/JSON config file"
    )
    parser.add_argument("--port", type=int, help="HAP port (overrides config)")
    parser.add_argument(
        "--pincode", help="HomeKit setup code, e.g. 031-45-154 (overrides config)"
    )
    parser.add_argument(
        "--persist-file", help="HAP pairing state file (overrides config)"
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Logging level (default: info)",
    )
    return parser


def main(argv=None):
    """Main entry point for the HomeKit bridge."""
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_level)
    logger.info(f"Starting MQTT Lightbulb v{__version__}")

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.port:
        config.port = args.port
    if args.pincode:
        if not PINCODE_PATTERN.match(args.pincode):
            logger.error(f"Invalid pincode '{args.pincode}', expected e.g. 031-45-154")
            return 1
        config.pincode = args.pincode
    if args.persist_file:
        config.persist_file = args.persist_file

    bridges = []
    try:
        for accessory in config.accessories:
            bridges.append(create_lightbulb_bridge(accessory))
    except ValueError as e:
        logger.error(f"Failed to create lightbulb: {e}")
        for bridge in bridges:
            bridge.stop()
        return 1

    driver = AccessoryDriver(
        port=config.port,
        persist_file=config.persist_file,
        pincode=config.pincode.encode(),
    )
    driver.add_accessory(
        accessory=build_homekit_bridge(driver, bridges, config.name)
    )
    signal.signal(signal.SIGTERM, driver.signal_handler)

    logger.info(f"HomeKit bridge '{config.name}' on port {config.port}")
    try:
        driver.start()
    finally:
        logger.info("Shutting down...")
        for bridge in bridges:
            bridge.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
