# ============================== SECTION 1: IMPORTS / CONSTANTS (START) =======================================
import argparse
import json
import sys
from typing import List, Optional

from mcpingwidget.constants import default_data_dir
from mcpingwidget.identicon import make_base64_identicon
from mcpingwidget.logs import configure_console_logging, configure_file_logging
from mcpingwidget.models import Offline, Online, Outcome, ProtocolType, Unreachable
from mcpingwidget.service import StatusResolutionService, default_service

EXIT_OK = 0
EXIT_UNREACHABLE = 1
EXIT_IDENTICON_FAILED = 2
# ============================== SECTION 1: IMPORTS / CONSTANTS (END) =========================================

# ============================== SECTION 2: OUTPUT HELPERS (START) ============================================
def _summary_line(outcome: Outcome) -> str:
    if isinstance(outcome, Online):
        info = outcome.info
        return (
            f"[ONLINE] {info.protocol_type.label} {info.version.name or '-'} "
            f"{info.players.online}/{info.players.max} players, {info.latency} ms"
        )
    if isinstance(outcome, Offline):
        return f"[OFFLINE] cached data, peak {outcome.week_stats.peak_online} players this week"
    if isinstance(outcome, Unreachable):
        return f"[UNREACHABLE] {outcome.message}"
    raise TypeError(f"unknown outcome: {outcome!r}")


def _exit_code(outcome: Outcome) -> int:
    return EXIT_UNREACHABLE if isinstance(outcome, Unreachable) else EXIT_OK
# ============================== SECTION 2: OUTPUT HELPERS (END) ==============================================

# ============================== SECTION 3: ENTRYPOINT (START) ================================================
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcping-widget",
        description="Resolve a Minecraft server's status with cached fallback and week stats.",
    )
    parser.add_argument("address", help="Server address, optionally with :port")
    parser.add_argument(
        "--protocol",
        choices=[p.value for p in ProtocolType],
        default=ProtocolType.AUTO.value,
        help="Ping protocol (default: auto, races Java and Bedrock)",
    )
    parser.add_argument("--data-dir", default=None, help="Directory for cached server data")
    parser.add_argument("--always-identicon", action="store_true", help="Always use the generated icon")
    parser.add_argument("--identicon", action="store_true", help="Only print the generated identicon (base64 PNG)")
    parser.add_argument("--summary", action="store_true", help="Print a one-line summary instead of JSON")
    parser.add_argument("--log-dir", default=None, help="Write a rotating log file to this directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    return parser


def main(argv: Optional[List[str]] = None, service: Optional[StatusResolutionService] = None) -> int:
    args = build_parser().parse_args(argv)
    protocol_type = ProtocolType(args.protocol)

    configure_console_logging(args.verbose)
    if args.log_dir:
        configure_file_logging(args.log_dir)

    if args.identicon:
        identicon = make_base64_identicon(protocol_type, args.address)
        if identicon is None:
            print("[ERROR] identicon generation failed", file=sys.stderr)
            return EXIT_IDENTICON_FAILED
        print(identicon)
        return EXIT_OK

    service = service or default_service()
    outcome = service.resolve(
        args.address,
        protocol_type,
        args.data_dir or default_data_dir(),
        always_use_identicon=args.always_identicon,
    )

    if args.summary:
        print(_summary_line(outcome), flush=True)
    else:
        print(json.dumps(outcome.as_dict(), ensure_ascii=False, indent=2), flush=True)
    return _exit_code(outcome)


if __name__ == "__main__":
    sys.exit(main())
# ============================== SECTION 3: ENTRYPOINT (END) ==================================================
