"""
bmc-bootstrap test configuration.

Fixtures wire fake BMCs into real RedfishClient instances through
httpx.MockTransport, so no network is touched.
"""

import pytest
import structlog

from bmc_bootstrap.redfish.client import make_client_factory
from tests.fakes import FakeBMC, FakeRedfish


@pytest.fixture(autouse=True)
def quiet_logging():
    """Drop structured log output during tests."""
    structlog.configure(
        processors=[structlog.processors.add_log_level, structlog.testing.LogCapture()],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def fake_redfish():
    """Router for fake BMCs, keyed by host."""
    return FakeRedfish()


@pytest.fixture
def client_factory(fake_redfish):
    """ClientFactory whose clients talk to fake_redfish."""
    return make_client_factory("admin", "secret", insecure=True, timeout=5.0, transport=fake_redfish.transport())


@pytest.fixture
def bmc(fake_redfish):
    """A single empty fake BMC reachable as host 'bmc1'."""
    return fake_redfish.add("bmc1", FakeBMC())


@pytest.fixture
async def client(client_factory, bmc):
    """RedfishClient bound to the 'bmc1' fake."""
    async with client_factory("bmc1") as c:
        yield c


@pytest.fixture
def sample_inventory_yaml():
    """Inventory file content with two BMCs."""
    return (
        "bmcs:\n"
        "  - xname: x9000c1s0b0\n"
        "    mac: 02:23:28:01:30:00\n"
        "    ip: bmc1\n"
        "  - xname: x9000c1s0b1\n"
        "    mac: 02:23:28:01:30:10\n"
        "    ip: bmc2\n"
        "nodes: []\n"
    )
