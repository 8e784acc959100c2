#!/usr/bin/env python
import sys
import json
import argparse
from pathlib import Path

from loguru import logger

from .config import FlowMapSettings
from .errors import FlowMapError
from .session import FlowSession


def _load_session(path: Path, settings: FlowMapSettings) -> FlowSession:
    data = json.loads(path.read_text(encoding="utf-8"))
    session = FlowSession(settings=settings)
    session.load(data)
    return session


def main(argv=None):
    parser = argparse.ArgumentParser(description="flowmap - validate and lay out screen flow graphs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    subparsers = parser.add_subparsers(dest="command")

    validate_parser = subparsers.add_parser("validate", help="Print the validation report for a snapshot")
    validate_parser.add_argument("snapshot", help="JSON file with {screens, transitions} or a flat record list")
    validate_parser.add_argument("--strict", action="store_true", help="Exit 2 unless the graph is complete")

    export_parser = subparsers.add_parser("export", help="Write the export payload for a snapshot")
    export_parser.add_argument("snapshot", help="JSON specification snapshot")
    export_parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    export_parser.add_argument("--ticks", type=int, default=300, help="Layout ticks to run before exporting")

    args = parser.parse_args(argv)

    logger.remove()
    logger.add(lambda msg: sys.stderr.write(msg), level="DEBUG" if args.verbose else "WARNING")

    if args.command is None:
        parser.print_help()
        return 0

    path = Path(args.snapshot)
    if not path.is_file():
        print(f"Error: snapshot file not found: {path}")
        return 1

    settings = FlowMapSettings.from_env()
    try:
        session = _load_session(path, settings)
    except (FlowMapError, json.JSONDecodeError) as e:
        print(f"[Error] {e}")
        return 1

    if args.command == "validate":
        print(json.dumps(session.report.to_dict(), indent=2))
        if args.strict and not session.report.is_complete:
            return 2
        return 0

    # export
    for i in range(args.ticks):
        session.layout_tick(now=i * settings.layout.tick_interval)
    payload = session.export(now=args.ticks * settings.layout.tick_interval).to_json()
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"[flowmap] Wrote {args.output}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
