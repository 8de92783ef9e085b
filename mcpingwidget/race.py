"""Probe a server over one protocol, or race both and keep the first answer."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Dict, Mapping, Optional, Tuple

from .errors import AllProbesFailed, ProbeError, ProbeTimeout
from .models import ProtocolType, ServerInfo
from .probe import DEFAULT_PROBES, Probe

__all__ = ["ProtocolRaceCoordinator"]

logger = logging.getLogger(__name__)

_RaceResult = Tuple[ProtocolType, Optional[ServerInfo], Optional[BaseException]]


class ProtocolRaceCoordinator:
    """Dispatch a probe by protocol type.

    ``AUTO`` starts the Java and Bedrock probes on their own daemon threads
    with the same timeout and returns whichever succeeds first. The loser is
    not cancelled: it runs to completion or timeout in the background and its
    result is dropped with the per-call queue. When both succeed at nearly the
    same moment, whichever result is queued first wins; there is no protocol
    preference. A protocol still silent when the timeout runs out is reported
    as a ``ProbeTimeout`` next to the errors already collected.
    """

    RACED = (ProtocolType.JAVA, ProtocolType.BEDROCK)

    def __init__(self, probes: Optional[Mapping[ProtocolType, Probe]] = None) -> None:
        self._probes: Dict[ProtocolType, Probe] = dict(DEFAULT_PROBES if probes is None else probes)

    def probe(self, address: str, timeout: float, protocol_type: ProtocolType) -> ServerInfo:
        if protocol_type is ProtocolType.AUTO:
            return self._race(address, timeout)
        try:
            probe = self._probes[protocol_type]
        except KeyError:
            raise ValueError(f"no probe registered for {protocol_type!r}") from None
        return probe(address, timeout)

    # ------------------------------------------------------------------ #
    # AUTO mode
    # ------------------------------------------------------------------ #
    def _race(self, address: str, timeout: float) -> ServerInfo:
        results: "queue.Queue[_RaceResult]" = queue.Queue()
        for protocol in self.RACED:
            threading.Thread(
                target=self._run_one,
                args=(results, protocol, address, timeout),
                name=f"mcping-{protocol.value}",
                daemon=True,
            ).start()

        # The race as a whole gets the same budget as a single probe.
        deadline = time.monotonic() + timeout
        errors: Dict[ProtocolType, ProbeError] = {}
        unexpected: Optional[BaseException] = None

        for _ in self.RACED:
            try:
                protocol, info, error = results.get(timeout=max(0.0, deadline - time.monotonic()))
            except queue.Empty:
                for pending in self.RACED:
                    if pending not in errors:
                        errors[pending] = ProbeTimeout(f"no response within {timeout:.1f}s")
                logger.debug("AUTO race for %s ran out of time", address)
                break

            if error is None and info is not None:
                logger.debug("AUTO race for %s won by %s", address, protocol.label)
                return info

            logger.debug("AUTO race for %s: %s probe failed: %s", address, protocol.label, error)
            if isinstance(error, ProbeError):
                errors[protocol] = error
            elif unexpected is None:
                unexpected = error

        if unexpected is not None:
            raise unexpected
        raise AllProbesFailed(errors)

    def _run_one(
        self,
        results: "queue.Queue[_RaceResult]",
        protocol: ProtocolType,
        address: str,
        timeout: float,
    ) -> None:
        try:
            info = self._probes[protocol](address, timeout)
        except Exception as exc:  # handed to the waiting caller
            results.put((protocol, None, exc))
        else:
            results.put((protocol, info, None))
