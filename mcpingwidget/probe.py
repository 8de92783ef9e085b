"""Java and Bedrock status probes built on mcstatus.

Each probe performs one network round trip and returns a ``ServerInfo`` or
raises a ``ProbeError`` subclass. Packet-level handling belongs to mcstatus;
this module only maps its responses and exceptions into our types.
"""

from __future__ import annotations

import logging
import socket
import struct
from typing import Any, Callable, Optional

from mcstatus import BedrockServer, JavaServer

from .errors import ConnectionFailed, DnsLookupFailed, ProbeError, ProtocolFailure
from .models import Player, Players, ProtocolType, ServerInfo, Version

__all__ = ["Probe", "java_probe", "bedrock_probe", "translate_error", "DEFAULT_PROBES"]

logger = logging.getLogger(__name__)

Probe = Callable[[str, float], ServerInfo]

_PARSE_ERRORS = (ValueError, KeyError, TypeError, IndexError, struct.error)


def translate_error(exc: BaseException) -> Optional[ProbeError]:
    """Map a library/socket exception to the probe error taxonomy.

    Returns ``None`` for exceptions that are not network or parse failures;
    those are bugs and should propagate as they are.
    """
    if isinstance(exc, ProbeError):
        return exc
    detail = str(exc) or type(exc).__name__
    if isinstance(exc, socket.gaierror):
        return DnsLookupFailed(f"DNS lookup failed: {detail}")
    if isinstance(exc, (TimeoutError, socket.timeout, ConnectionError)):
        return ConnectionFailed(f"connection failed: {detail}")
    if isinstance(exc, OSError):
        # mcstatus reports bad packets as plain IOErrors without an errno.
        if exc.errno is None:
            return ProtocolFailure(f"invalid status response: {detail}")
        return ConnectionFailed(f"connection failed: {detail}")
    if isinstance(exc, _PARSE_ERRORS):
        return ProtocolFailure(f"invalid status response: {detail}")
    return None


def _latency_ms(value: Any) -> int:
    try:
        return max(0, int(round(float(value))))
    except (TypeError, ValueError):
        return 0


def _plain_motd(motd: Any) -> str:
    if motd is None:
        return ""
    to_plain = getattr(motd, "to_plain", None)
    if callable(to_plain):
        return to_plain()
    return str(motd)


def _java_info(status: Any) -> ServerInfo:
    sample = tuple(
        Player(name=player.name, id=player.id) for player in (status.players.sample or [])
    )
    return ServerInfo(
        protocol_type=ProtocolType.JAVA,
        latency=_latency_ms(status.latency),
        version=Version(name=status.version.name or "", protocol=status.version.protocol),
        players=Players(online=status.players.online, max=status.players.max, sample=sample),
        description=_plain_motd(status.motd),
        favicon=status.icon,
    )


def _bedrock_info(status: Any) -> ServerInfo:
    description = _plain_motd(status.motd)
    map_name: Optional[str] = getattr(status, "map_name", None)
    if map_name:
        description = f"{description}\n{map_name}" if description else map_name
    return ServerInfo(
        protocol_type=ProtocolType.BEDROCK,
        latency=_latency_ms(status.latency),
        version=Version(name=status.version.name or "", protocol=status.version.protocol),
        players=Players(online=status.players.online or 0, max=status.players.max or 0),
        description=description,
        favicon=None,
    )


def _run_probe(
    kind: str,
    server_cls: Any,
    to_info: Callable[[Any], ServerInfo],
    address: str,
    timeout: float,
) -> ServerInfo:
    logger.debug("%s probe -> %s (timeout %.1fs)", kind, address, timeout)
    try:
        server = server_cls.lookup(address, timeout=timeout)
    except ValueError as exc:
        raise DnsLookupFailed(f"invalid server address {address!r}: {exc}") from exc
    except Exception as exc:
        error = translate_error(exc)
        if error is None:
            raise
        raise error from exc

    try:
        # One attempt only: mcstatus retries three times by default.
        info = to_info(server.status(tries=1))
    except Exception as exc:
        error = translate_error(exc)
        if error is None:
            raise
        logger.debug("%s probe failed for %s: %s", kind, address, error)
        raise error from exc

    logger.debug("%s probe answered for %s in %d ms", kind, address, info.latency)
    return info


def java_probe(address: str, timeout: float) -> ServerInfo:
    """Ping ``address`` with the Java protocol (TCP, default port 25565)."""
    return _run_probe("Java", JavaServer, _java_info, address, timeout)


def bedrock_probe(address: str, timeout: float) -> ServerInfo:
    """Ping ``address`` with the Bedrock protocol (UDP, default port 19132)."""
    return _run_probe("Bedrock", BedrockServer, _bedrock_info, address, timeout)


DEFAULT_PROBES = {
    ProtocolType.JAVA: java_probe,
    ProtocolType.BEDROCK: bedrock_probe,
}
