import pathlib
import sys
import threading
import time

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mcpingwidget.models import Player, Players, ProtocolType, ServerInfo, Version
from mcpingwidget.race import ProtocolRaceCoordinator
from mcpingwidget.service import StatusResolutionService

FAKE_IDENTICON = "aWRlbnRpY29u"


class ProbeStub:
    """Stand-in for a network probe: returns ``result`` or raises ``error``."""

    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []
        self.finished = threading.Event()

    def __call__(self, address, timeout):
        self.calls.append((address, timeout))
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return self.result
        finally:
            self.finished.set()


@pytest.fixture(autouse=True)
def force_utc_tz(monkeypatch):
    monkeypatch.setenv("TZ", "UTC")
    try:
        time.tzset()
    except AttributeError:
        pass


@pytest.fixture
def make_info():
    def _make(
        protocol_type=ProtocolType.JAVA,
        online=103,
        max_=200,
        favicon=None,
        latency=63,
        version="",
        description="",
        sample=(),
    ):
        return ServerInfo(
            protocol_type=protocol_type,
            latency=latency,
            version=Version(name=version, protocol=187),
            players=Players(
                online=online,
                max=max_,
                sample=tuple(Player(name=name, id=pid) for name, pid in sample),
            ),
            description=description,
            favicon=favicon,
        )

    return _make


@pytest.fixture
def make_service():
    def _make(java, bedrock, identicon=None):
        coordinator = ProtocolRaceCoordinator(
            {ProtocolType.JAVA: java, ProtocolType.BEDROCK: bedrock}
        )
        return StatusResolutionService(
            coordinator,
            identicon=identicon or (lambda protocol_type, address: FAKE_IDENTICON),
            timeout=1.0,
        )

    return _make
