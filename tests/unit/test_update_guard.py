"""Unit tests for guarded firmware updates.

Tests:
- Pre-flight skip when already at the expected version
- Force and fetch-failure policies
- SimpleUpdate payload
- Post-trigger condition check
"""

from unittest.mock import AsyncMock, patch

from bmc_bootstrap.services.update_guard import UpdateGuard, UpdateRequest, UpdateResult
from tests.fakes import BMC_TARGET, ROOT, condition, firmware_doc

SIMPLE_UPDATE = f"{ROOT}/UpdateService/Actions/SimpleUpdate"
BIOS0 = f"{ROOT}/UpdateService/FirmwareInventory/Node0.BIOS"
BIOS1 = f"{ROOT}/UpdateService/FirmwareInventory/Node1.BIOS"


class TestPreflight:
    """Tests for the version pre-flight check."""

    async def test_skip_when_all_current(self, bmc, client):
        bmc.documents[BIOS0] = firmware_doc("2.5")
        bmc.documents[BIOS1] = firmware_doc("2.5")
        request = UpdateRequest("http://images/bios.bin", [BIOS0, BIOS1], expected_version="2.5")

        outcome = await UpdateGuard(client, settle_seconds=0).run(request)

        assert outcome.result is UpdateResult.SKIPPED
        assert outcome.observed_versions == {BIOS0: "2.5", BIOS1: "2.5"}
        assert f"{BIOS0}: 2.5" in outcome.message
        assert bmc.paths("POST") == []

    async def test_force_always_posts(self, bmc, client):
        bmc.documents[BMC_TARGET] = firmware_doc("2.5")
        request = UpdateRequest("http://images/bmc.bin", [BMC_TARGET], expected_version="2.5", force=True)

        outcome = await UpdateGuard(client, settle_seconds=0).run(request)

        assert outcome.result is UpdateResult.TRIGGERED
        assert bmc.paths("POST") == [SIMPLE_UPDATE]

    async def test_any_target_behind_proceeds(self, bmc, client):
        bmc.documents[BIOS0] = firmware_doc("2.5")
        bmc.documents[BIOS1] = firmware_doc("2.4")
        request = UpdateRequest("http://images/bios.bin", [BIOS0, BIOS1], expected_version="2.5")

        outcome = await UpdateGuard(client, settle_seconds=0).run(request)

        assert outcome.result is UpdateResult.TRIGGERED

    async def test_fetch_failure_proceeds(self, bmc, client):
        """Test one unreadable target disables the skip for the whole host."""
        bmc.documents[BIOS0] = firmware_doc("2.5")
        bmc.failures[BIOS1] = 503
        request = UpdateRequest("http://images/bios.bin", [BIOS0, BIOS1], expected_version="2.5")

        outcome = await UpdateGuard(client, settle_seconds=0).run(request)

        assert outcome.result is UpdateResult.TRIGGERED
        assert bmc.paths("POST") == [SIMPLE_UPDATE]

    async def test_no_expected_version_skips_preflight(self, bmc, client):
        request = UpdateRequest("http://images/bmc.bin", [BMC_TARGET])

        assert await UpdateGuard(client).preflight(request) is None
        assert bmc.requests == []


class TestTrigger:
    """Tests for the SimpleUpdate action."""

    async def test_payload(self, bmc, client):
        request = UpdateRequest("https://images/bios.bin", [BIOS0, BIOS1], transfer_protocol="HTTPS")

        await UpdateGuard(client, settle_seconds=0).run(request)

        method, path, body = bmc.requests[0]
        assert (method, path) == ("POST", SIMPLE_UPDATE)
        assert body == {
            "ImageURI": "https://images/bios.bin",
            "TransferProtocol": "HTTPS",
            "Targets": [BIOS0, BIOS1],
        }

    async def test_post_failure_reported(self, bmc, client):
        bmc.failures[SIMPLE_UPDATE] = 400
        request = UpdateRequest("http://images/bmc.bin", [BMC_TARGET])

        outcome = await UpdateGuard(client, settle_seconds=0).run(request)

        assert outcome.result is UpdateResult.FAILED
        assert outcome.ok is False
        assert "400" in outcome.message
        # Not retried, no post-check
        assert bmc.paths("POST") == [SIMPLE_UPDATE]
        assert bmc.paths("GET") == []


class TestPostCheck:
    """Tests for the post-trigger condition check."""

    async def test_warning_conditions_reported(self, bmc, client):
        bmc.documents[BMC_TARGET] = firmware_doc(
            "1.0",
            health="Warning",
            conditions=[
                condition("Image download failed", "OEM.DownloadFailed", "Warning"),
                condition("Staged", "OEM.Staged", "OK"),
            ],
        )
        request = UpdateRequest("http://images/bmc.bin", [BMC_TARGET])

        outcome = await UpdateGuard(client, settle_seconds=0).run(request)

        assert outcome.result is UpdateResult.WARNINGS
        assert outcome.ok is True
        assert outcome.warnings == [f"[{BMC_TARGET}] Warning: Image download failed"]
        assert outcome.message.startswith("firmware update completed with warnings/errors")

    async def test_settle_delay(self, bmc, client):
        request = UpdateRequest("http://images/bmc.bin", [BMC_TARGET])

        with patch("bmc_bootstrap.services.update_guard.asyncio.sleep", new=AsyncMock()) as sleep:
            await UpdateGuard(client, settle_seconds=2.0).run(request)

        sleep.assert_awaited_once_with(2.0)
