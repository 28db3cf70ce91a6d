"""
usbinfo Command Line Interface.

Provides commands for inspecting USB devices:
- list: Describe all connected devices
- monitor: Report devices as they are connected and disconnected
- classes: Look up USB class, subclass and protocol names
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading

import usb.core
import yaml

from usbinfo import __version__
from usbinfo.classes import ClassCodeRegistry
from usbinfo.config import UsbInfoConfig, load_config, validate_config
from usbinfo.device.events import EventType, MonitorEvent
from usbinfo.device.linux import UdevEventSource, USBEnumerator
from usbinfo.monitor import PresenceMonitor, format_event
from usbinfo.report import DescriptorReporter
from usbinfo.schemas import DeviceSchema, MonitorEventSchema


logger = logging.getLogger("usbinfo")


def hex_byte(value: str) -> int:
    """Parse a class code argument such as "03" or "0x03"."""
    try:
        code = int(value, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex byte: {value}") from None
    if not 0 <= code <= 0xFF:
        raise argparse.ArgumentTypeError(f"out of range: {value}")
    return code


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c", "--config",
        metavar="FILE",
        help="Path to configuration file",
    )
    common.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    parser = argparse.ArgumentParser(
        prog="usbinfo",
        description="Describe connected USB devices and their descriptors",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list command
    list_parser = subparsers.add_parser(
        "list", parents=[common], help="Describe connected devices"
    )
    list_parser.add_argument(
        "--no-raw",
        action="store_true",
        help="Omit raw descriptor dumps",
    )
    list_parser.set_defaults(func=cmd_list)

    # monitor command
    monitor_parser = subparsers.add_parser(
        "monitor", parents=[common], help="Monitor device connections"
    )
    monitor_parser.add_argument(
        "-d", "--details",
        action="store_true",
        help="Print the full report of present and connected devices",
    )
    monitor_parser.set_defaults(func=cmd_monitor)

    # classes command
    classes_parser = subparsers.add_parser(
        "classes", parents=[common], help="Look up class codes"
    )
    classes_parser.add_argument("class_code", nargs="?", type=hex_byte, help="Class (hex)")
    classes_parser.add_argument("subclass_code", nargs="?", type=hex_byte, help="Subclass (hex)")
    classes_parser.add_argument("protocol_code", nargs="?", type=hex_byte, help="Protocol (hex)")
    classes_parser.set_defaults(func=cmd_classes)

    return parser


def setup_logging(config: UsbInfoConfig, verbose: bool = False) -> None:
    """Configure logging based on config."""
    level = logging.DEBUG if verbose else getattr(
        logging, config.logging.log_level.upper(), logging.WARNING
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        filename=config.logging.log_file,
    )


def build_registry(config: UsbInfoConfig) -> ClassCodeRegistry:
    """Get class code registry from config."""
    return ClassCodeRegistry(path=config.registry.class_table)


def use_json(args: argparse.Namespace, config: UsbInfoConfig) -> bool:
    """Check whether JSON output is requested."""
    return getattr(args, "json", False) or config.report.format == "json"


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except yaml.YAMLError as e:
        print(f"Error: Invalid configuration file: {e}", file=sys.stderr)
        return 1
    except TypeError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    errors = validate_config(config)
    if errors:
        for error in errors:
            print(f"Config error: {error}", file=sys.stderr)
        return 1

    setup_logging(config, args.verbose)
    return args.func(args, config)


def enumerate_main(argv: list[str] | None = None) -> int:
    """Entry point describing all connected devices once."""
    return main(["list", *(sys.argv[1:] if argv is None else argv)])


def monitor_main(argv: list[str] | None = None) -> int:
    """Entry point monitoring devices until ENTER is pressed."""
    return main(["monitor", *(sys.argv[1:] if argv is None else argv)])


def cmd_list(args: argparse.Namespace, config: UsbInfoConfig) -> int:
    """Describe all connected devices."""
    registry = build_registry(config)
    try:
        devices = USBEnumerator().enumerate_all()
    except usb.core.NoBackendError:
        print("Error: No USB backend available. Install libusb.", file=sys.stderr)
        return 1

    logger.info("Found %d USB devices", len(devices))

    if use_json(args, config):
        data = [DeviceSchema.from_device(d, registry).model_dump(mode="json") for d in devices]
        print(json.dumps(data, indent=2))
    else:
        reporter = DescriptorReporter(
            registry,
            sys.stdout,
            raw_descriptors=config.report.raw_descriptors and not args.no_raw,
        )
        reporter.report(devices)
    return 0


def cmd_monitor(args: argparse.Namespace, config: UsbInfoConfig) -> int:
    """Report devices as they are connected and disconnected."""
    registry = build_registry(config)
    as_json = use_json(args, config)
    details = args.details or config.monitor.details
    reporter = DescriptorReporter(registry, sys.stdout, config.report.raw_descriptors)
    output_lock = threading.Lock()

    def handle(event: MonitorEvent) -> None:
        with output_lock:
            if as_json:
                print(MonitorEventSchema.from_event(event, registry).model_dump_json(), flush=True)
                return
            print(format_event(event), flush=True)
            if details and event.event_type is not EventType.DISCONNECTED:
                reporter.report_device(event.device)
                sys.stdout.flush()

    try:
        with UdevEventSource() as source:
            monitor = PresenceMonitor(source)
            print("Monitoring... Press ENTER to quit.", file=sys.stderr)
            monitor.run(handle)
    except usb.core.NoBackendError:
        print("Error: No USB backend available. Install libusb.", file=sys.stderr)
        return 1
    return 0


def cmd_classes(args: argparse.Namespace, config: UsbInfoConfig) -> int:
    """Look up class names, or list the whole table."""
    registry = build_registry(config)

    if args.class_code is None:
        if use_json(args, config):
            data = [
                {"class_code": c.class_code, "name": c.name} for c in registry.classes()
            ]
            print(json.dumps(data, indent=2))
            return 0
        for entry in registry.classes():
            print(f"{entry.class_code:02x}  {entry.name}")
            for sub in registry.subclasses(entry.class_code):
                print(f"  {sub.subclass_code:02x}  {sub.name}")
                for proto in registry.protocols(entry.class_code, sub.subclass_code):
                    print(f"    {proto.protocol_code:02x}  {proto.name}")
        return 0

    result = {"class": registry.lookup_class(args.class_code)}
    if args.subclass_code is not None:
        result["subclass"] = registry.lookup_subclass(args.class_code, args.subclass_code)
        if args.protocol_code is not None:
            result["protocol"] = registry.lookup_protocol(
                args.class_code, args.subclass_code, args.protocol_code
            )

    if use_json(args, config):
        print(json.dumps(result, indent=2))
    else:
        for key, name in result.items():
            print(f"{key + ':':<10}{name if name is not None else '(unknown)'}")

    return 0 if all(name is not None for name in result.values()) else 1


if __name__ == "__main__":
    sys.exit(main())
