#!/usr/bin/env python3

import argparse
import json
import logging
import sys
from pathlib import Path

from logger import setup_logging
from managers import MemoryTemperatureManager, RecordingPublisher
from managers.memory import (
    COMPRESSIBLE_TEMPERATURES,
    ENTITY_KINDS,
    JsonFileStore,
    MemoryTemperatureError,
)
from session.temperature_configuration import TemperatureConfiguration


def build_manager(config: TemperatureConfiguration, logger: logging.Logger):
    """Wire a manager to the configured JSON store with a recording publisher."""
    store = JsonFileStore(
        config.get_store_path(),
        logger=logger,
        create_missing=config.create_missing_entities,
    )
    publisher = RecordingPublisher()
    manager = MemoryTemperatureManager(logger, config, store, publisher=publisher)
    return manager, publisher


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect and compact tiered game memory"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("pyproject.toml"),
        help="TOML file with a [tool.memtemp] section",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    access = subparsers.add_parser("access", help="Record an access to an entity")
    access.add_argument("entity_id")
    access.add_argument("kind", choices=ENTITY_KINDS)

    compress = subparsers.add_parser("compress", help="Compress an entity to a tier")
    compress.add_argument("entity_id")
    compress.add_argument("tier", choices=COMPRESSIBLE_TEMPERATURES)
    compress.add_argument("--kind", choices=ENTITY_KINDS, default=None)

    expand = subparsers.add_parser("expand", help="Restore an entity to hot")
    expand.add_argument("entity_id")
    expand.add_argument("--kind", choices=ENTITY_KINDS, default=None)

    subparsers.add_parser("stats", help="Show tier distribution and token savings")

    return parser


def run_command(args, manager: MemoryTemperatureManager, publisher: RecordingPublisher) -> dict:
    if args.command == "access":
        entity = manager.on_access(args.entity_id, args.kind)
        output = entity.to_dict() if entity else None
    elif args.command == "compress":
        result = manager.compress(args.entity_id, args.tier, args.kind)
        output = result.to_event_payload() if result else None
    elif args.command == "expand":
        output = manager.expand(args.entity_id, args.kind)
    else:
        output = manager.get_memory_stats().to_dict()

    return {
        "command": args.command,
        "output": output,
        "events": [{"event": name, "payload": payload} for name, payload in publisher.events],
    }


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = TemperatureConfiguration.from_toml(args.config)
    workdir = Path(config.workdir)
    logger = setup_logging(
        str(workdir / config.log_file),
        str(workdir / config.json_log_file),
        logging.DEBUG if args.verbose else logging.INFO,
    )

    manager, publisher = build_manager(config, logger)
    manager.initialize()
    try:
        report = run_command(args, manager, publisher)
    except MemoryTemperatureError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    finally:
        manager.shutdown()

    print(json.dumps(report, indent=2, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
