from __future__ import annotations

import argparse
import json
import sys
import traceback
from dataclasses import asdict
from typing import Any

from meshtastic_link.core.enums import AdminKind, ModemPreset, ResponseOutcome
from meshtastic_link.core.errors import AdminCommandError, DecodeError
from meshtastic_link.core.models import SignalSample, node_id_hex
from meshtastic_link.core.radio import assess, format_rssi, format_snr, rssi_to_signal_percent
from meshtastic_link.link.admin import AdminCommandCorrelator
from meshtastic_link.link.config import LinkConfig, load_link_config
from meshtastic_link.link.connection_status import ConnectionStatus, decode_connection_status
from meshtastic_link.link.logging_setup import configure_logging, export_logs
from meshtastic_link.link.settings import MODEM_PRESETS
from meshtastic_link.link.timers import ManualTimerService
from meshtastic_link.mock import MockAdminTransport


def _build_parser() -> argparse.ArgumentParser:
    def add_global_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--debug",
            dest="debug",
            action="store_true",
            help="Enable verbose debug logs",
        )

    parser = argparse.ArgumentParser(description="Meshtastic device link tools")
    add_global_args(parser)

    sub = parser.add_subparsers(dest="command", required=True)

    decode = sub.add_parser("decode-status", help="Decode a hex DeviceConnectionStatus message")
    add_global_args(decode)
    decode.add_argument("hex", help="Encoded message as hex (spaces allowed)")

    classify = sub.add_parser("classify", help="Rate a signal sample")
    add_global_args(classify)
    classify.add_argument(
        "--snr", type=float, default=None, help="SNR in dB (omit if none was reported)"
    )
    classify.add_argument("--rssi", type=int, required=True, help="RSSI in dBm")
    classify.add_argument("--hops", type=int, default=0, help="Hops away (0 = direct)")
    classify.add_argument(
        "--via-relay", action="store_true", help="Packet arrived via MQTT or another bridge"
    )
    classify.add_argument(
        "--preset",
        default=None,
        help="Modem preset name (default: MESHTASTIC_LINK_MODEM_PRESET or LONG_FAST)",
    )

    simulate = sub.add_parser(
        "simulate-admin", help="Run an admin request against the mock transport"
    )
    add_global_args(simulate)
    simulate.add_argument(
        "--kind", choices=[str(kind) for kind in AdminKind], default=str(AdminKind.REBOOT)
    )
    simulate.add_argument("--from-node", type=lambda v: int(v, 0), default=0x1)
    simulate.add_argument("--to", dest="to_node", type=lambda v: int(v, 0), required=True)
    simulate.add_argument("--admin-index", type=int, default=0)
    outcome = simulate.add_mutually_exclusive_group()
    outcome.add_argument("--ack", dest="respond", action="store_const", const="ack")
    outcome.add_argument("--nak", dest="respond", action="store_const", const="nak")
    outcome.add_argument("--timeout", dest="respond", action="store_const", const="none")
    simulate.add_argument("--no-link", action="store_true", help="Simulate a dropped link")
    simulate.set_defaults(respond="ack")

    export = sub.add_parser("export-logs", help="Export application logs for bug reports")
    export.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write logs to file (default: stdout)",
    )

    return parser


def _debug(enabled: bool, message: str) -> None:
    if enabled:
        print(f"[debug] {message}", flush=True)


def _status_to_dict(status: ConnectionStatus) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for report in status.reports():
        entry = asdict(report)
        network = getattr(report, "status", None)
        if network is not None:
            entry["status"]["ip_address"] = network.ip_address_str
        data[str(report.kind)] = entry
    if status.unknown_fields:
        data["unknown_fields"] = status.unknown_fields
    return data


def _decode_status(hex_text: str, debug: bool) -> int:
    try:
        raw = bytes.fromhex(hex_text.replace(" ", ""))
    except ValueError as exc:
        print(f"error: invalid hex: {exc}")
        return 1
    _debug(debug, f"decoding {len(raw)} bytes")
    try:
        status = decode_connection_status(raw)
    except DecodeError as exc:
        print(json.dumps({"status": "error", "error": type(exc).__name__, "detail": str(exc)}))
        return 1
    print(json.dumps(_status_to_dict(status), default=lambda b: b.hex()))
    return 0


def _classify(args: argparse.Namespace, config: LinkConfig) -> int:
    preset = ModemPreset.from_name(args.preset) if args.preset else config.modem_preset
    sample = SignalSample(
        snr=args.snr,
        rssi=args.rssi,
        hop_count=args.hops,
        via_relay=args.via_relay,
        modem_preset=preset,
    )
    report = assess(sample)
    print(
        json.dumps(
            {
                "preset": preset.name,
                "radio": MODEM_PRESETS[preset],
                "snr": None if sample.snr is None else format_snr(sample.snr),
                "rssi": format_rssi(sample.rssi),
                "signal_percent": rssi_to_signal_percent(sample.rssi),
                "rating": report.rating.name,
                "snr_color": report.snr_color,
                "rssi_rating": report.rssi_rating.name,
                "rssi_color": report.rssi_color,
            }
        )
    )
    return 0


def _simulate_admin(args: argparse.Namespace, config: LinkConfig) -> int:
    timers = ManualTimerService()
    respond = None if args.respond == "none" else ResponseOutcome(args.respond)
    transport = MockAdminTransport(timers, respond=respond)
    transport.link_up = not args.no_link
    events: list[dict] = []
    with AdminCommandCorrelator(
        transport,
        timers,
        timeout=config.admin_timeout,
        clock=timers.clock,
        emit=events.append,
    ) as correlator:
        transport.set_response_handler(correlator.handle_response)
        try:
            pending = correlator.issue(
                args.from_node, args.to_node, args.admin_index, AdminKind(args.kind)
            )
        except AdminCommandError as exc:
            print(
                json.dumps(
                    {"status": "rejected", "error": type(exc).__name__, "detail": str(exc)}
                )
            )
            return 1
        _debug(args.debug, f"issued request {pending.request_id} to {node_id_hex(args.to_node)}")
        timers.advance(config.admin_timeout)
        state = pending.result(timeout=0)
    for event in events:
        print(json.dumps(event))
    return 0 if state == "acked" else 1


def _export_logs(output: str | None) -> int:
    if output:
        with open(output, "w", encoding="utf-8") as dest:
            export_logs(dest)
        print(f"Logs written to {output}")
    else:
        export_logs(sys.stdout)
    return 0


def run(args: argparse.Namespace) -> int:
    if args.command == "export-logs":
        return _export_logs(args.output)

    configure_logging("DEBUG" if args.debug else "WARNING")
    config = load_link_config()
    _debug(args.debug, f"command={args.command} {config.to_log_string()}")
    if args.command == "decode-status":
        return _decode_status(args.hex, args.debug)
    if args.command == "classify":
        return _classify(args, config)
    if args.command == "simulate-admin":
        return _simulate_admin(args, config)
    raise RuntimeError(f"Unsupported command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return run(args)
    except Exception as exc:  # noqa: BLE001
        if getattr(args, "debug", False):
            print(f"[debug] error: {exc}")
            traceback.print_exc()
        else:
            print(f"error: {exc}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
