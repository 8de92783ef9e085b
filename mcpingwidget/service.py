"""Turn a live probe (or its absence) into an Online/Offline/Unreachable outcome."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Union

from . import logs  # noqa: F401
from .constants import PROBE_TIMEOUT_SECONDS
from .errors import InputValidationError, InternalFault, ProbeError, StatusError
from .favicon import FaviconCache
from .identicon import make_base64_identicon
from .models import Favicon, FaviconKind, Offline, Online, Outcome, ProtocolType, Unreachable
from .race import ProtocolRaceCoordinator
from .storage import IdentityKey, PathLike, ServerStorage
from .week_stats import WeekStatsEngine

__all__ = ["StatusResolutionService", "default_service", "resolve"]

logger = logging.getLogger(__name__)

IdenticonFn = Callable[[ProtocolType, str], Optional[str]]


class StatusResolutionService:
    """Resolve a server's status, falling back to cached data when it is down.

    Per call, strictly in order: validate input, make sure the server folder
    exists, probe, then update the favicon cache and the week stats. Every
    failure ends as an ``Unreachable`` value; ``resolve`` never raises.
    """

    def __init__(
        self,
        coordinator: Optional[ProtocolRaceCoordinator] = None,
        *,
        favicon_cache: Optional[FaviconCache] = None,
        week_stats: Optional[WeekStatsEngine] = None,
        identicon: IdenticonFn = make_base64_identicon,
        timeout: float = PROBE_TIMEOUT_SECONDS,
    ) -> None:
        self._coordinator = coordinator or ProtocolRaceCoordinator()
        self._favicons = favicon_cache or FaviconCache()
        self._week_stats = week_stats or WeekStatsEngine()
        self._identicon = identicon
        self._timeout = timeout

    def resolve(
        self,
        address: str,
        protocol_type: Union[ProtocolType, str],
        app_data_root: PathLike,
        always_use_identicon: bool = False,
        now: Optional[datetime] = None,
    ) -> Outcome:
        try:
            outcome = self._resolve(address, protocol_type, app_data_root, always_use_identicon, now)
        except StatusError as exc:
            logger.info("Server %r unreachable: %s", address, exc)
            return Unreachable(f"failed to ping server: {exc}", error=exc)
        except Exception as exc:
            logger.exception("Unexpected fault while resolving %r", address)
            fault = InternalFault(f"{type(exc).__name__}: {exc}")
            return Unreachable(f"failed to ping server: {fault}", error=fault)

        logger.info("Server %r is %s", address, outcome.status)
        return outcome

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _resolve(
        self,
        address: str,
        protocol_type: Union[ProtocolType, str],
        app_data_root: PathLike,
        always_use_identicon: bool,
        now: Optional[datetime],
    ) -> Outcome:
        if not address or not address.strip():
            raise InputValidationError("empty server address")
        if not app_data_root or not str(app_data_root).strip():
            raise InputValidationError("empty app data root path")
        if not isinstance(protocol_type, ProtocolType):
            try:
                protocol_type = ProtocolType.parse(str(protocol_type))
            except ValueError as exc:
                raise InputValidationError(str(exc)) from None

        storage = ServerStorage(app_data_root, IdentityKey.for_server(address, protocol_type))
        storage.ensure()

        try:
            info = self._coordinator.probe(address, self._timeout, protocol_type)
        except ProbeError:
            cached = self._favicons.load(storage)
            if cached is None:
                raise
            logger.debug("Live probe of %r failed; using cached data", address)
            favicon = self._select_favicon(cached.favicon, protocol_type, address, always_use_identicon)
            # Outages count as zero players so the averages reflect them.
            week_stats = self._week_stats.record(storage, 0, 0, now)
            return Offline(favicon=favicon, week_stats=week_stats)

        record = self._favicons.store(storage, info.favicon)
        week_stats = self._week_stats.record(storage, info.players.online, info.players.max, now)
        favicon = self._select_favicon(record.favicon, protocol_type, address, always_use_identicon)
        return Online(info=info, favicon=favicon, week_stats=week_stats)

    def _select_favicon(
        self,
        favicon: Optional[str],
        protocol_type: ProtocolType,
        address: str,
        always_use_identicon: bool,
    ) -> Favicon:
        if favicon and not always_use_identicon:
            return Favicon(FaviconKind.SERVER, favicon)
        generated = self._identicon(protocol_type, address)
        if generated:
            return Favicon(FaviconKind.GENERATED, generated)
        return Favicon.missing()


_default_service: Optional[StatusResolutionService] = None


def default_service() -> StatusResolutionService:
    """Shared service using the mcstatus-backed probes, created on first use."""
    global _default_service
    if _default_service is None:
        _default_service = StatusResolutionService()
    return _default_service


def resolve(
    address: str,
    protocol_type: Union[ProtocolType, str],
    app_data_root: PathLike,
    always_use_identicon: bool = False,
) -> Outcome:
    return default_service().resolve(address, protocol_type, app_data_root, always_use_identicon)
