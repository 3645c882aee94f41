"""Unit tests for the panel client and its endpoints against a fake panel."""
import json

import httpx
import pytest

from conftest import BASE_URL, FakePanel
from inbound_manager.api import PanelClient
from inbound_manager.domain_checker import DomainChecker
from inbound_manager.draft import InboundDraft
from inbound_manager.models import InboundConfig, RealityProbeResult
from inbound_manager.probes import panel_probe
from inbound_manager.synthesizer import FieldError
from inbound_manager.util import DBLockedError


def reality_draft(**fields) -> InboundDraft:
    fields.setdefault("remark", "reality node")
    fields.setdefault("port", "443")
    return InboundDraft(security="reality", reality_public_key="pub", **fields)


class TestSession:
    """Login and session handling."""

    @pytest.mark.asyncio
    async def test_login_sets_bearer_token(self, panel_client: PanelClient, fake_panel: FakePanel):
        assert fake_panel.logins == 1
        assert panel_client.session.headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_wrong_credentials(self, fake_panel: FakePanel):
        client = PanelClient(BASE_URL, username="admin", password="nope",
                             transport=httpx.MockTransport(fake_panel))
        with pytest.raises(ValueError):
            async with client:
                pass

    @pytest.mark.asyncio
    async def test_relogin_on_expired_session(self, panel_client: PanelClient, fake_panel: FakePanel):
        fake_panel.expired = True
        assert await panel_client.inbounds_end.get_all() == []
        assert fake_panel.logins == 2

    @pytest.mark.asyncio
    async def test_not_connected(self):
        with pytest.raises(RuntimeError):
            await PanelClient(BASE_URL).safe_get("/inbound/list")

    @pytest.mark.asyncio
    async def test_db_locked_is_retried(self, panel_client: PanelClient, fake_panel: FakePanel):
        fake_panel.locked_answers = 2
        assert await panel_client.inbounds_end.get_all() == []
        assert fake_panel.paths().count("/api/inbound/list") == 3

    @pytest.mark.asyncio
    async def test_db_locked_gives_up(self, panel_client: PanelClient, fake_panel: FakePanel):
        fake_panel.locked_answers = 10
        with pytest.raises(DBLockedError):
            await panel_client.inbounds_end.get_all()
        assert fake_panel.paths().count("/api/inbound/list") == panel_client.max_retries

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_raises(self, panel_client: PanelClient):
        with pytest.raises(RuntimeError):
            await panel_client.inbounds_end.get("missing")


class TestInboundsEndpoint:
    """Submit boundary."""

    @pytest.mark.asyncio
    async def test_submit_create(self, panel_client: PanelClient, fake_panel: FakePanel):
        sent = await panel_client.inbounds_end.submit(reality_draft(network="ws", ws_host="cdn.example.com"))
        add = [r for r in fake_panel.requests if r.url.path == "/api/inbound/add"]
        assert len(add) == 1
        body = json.loads(add[0].content)
        assert body == sent.to_payload()
        assert body["streamSettings"]["realitySettings"]["publicKey"] == "pub"
        assert body["streamSettings"]["wsSettings"]["headers"] == {"Host": "cdn.example.com"}

        stored = await panel_client.inbounds_end.get_all()
        assert stored == [sent]
        assert await panel_client.inbounds_end.get(sent.id) == sent

    @pytest.mark.asyncio
    async def test_invalid_draft_is_not_sent(self, panel_client: PanelClient, fake_panel: FakePanel):
        with pytest.raises(FieldError):
            await panel_client.inbounds_end.submit(reality_draft(reality_private_key=""))
        assert "/api/inbound/add" not in fake_panel.paths()

    @pytest.mark.asyncio
    async def test_submit_update(self, panel_client: PanelClient, fake_panel: FakePanel):
        created = await panel_client.inbounds_end.submit(reality_draft())
        fake_panel.inbounds[created.id].update(up=10, down=20)
        existing = await panel_client.inbounds_end.get(created.id)

        draft = InboundDraft.from_inbound(existing)
        draft.update(remark="renamed", port=8443)
        updated = await panel_client.inbounds_end.submit(draft, editing=existing)

        assert "/api/inbound/update" in fake_panel.paths()
        assert updated.id == created.id
        assert (updated.up, updated.down) == (10, 20)
        assert (await panel_client.inbounds_end.get(created.id)).port == 8443

    @pytest.mark.asyncio
    async def test_toggle_reset_delete(self, panel_client: PanelClient, fake_panel: FakePanel):
        created = await panel_client.inbounds_end.submit(reality_draft())
        await panel_client.inbounds_end.toggle(created.id, False)
        assert fake_panel.inbounds[created.id]["enable"] is False

        fake_panel.inbounds[created.id].update(up=5, down=6)
        await panel_client.inbounds_end.reset_traffic(created.id)
        assert (fake_panel.inbounds[created.id]["up"], fake_panel.inbounds[created.id]["down"]) == (0, 0)

        await panel_client.inbounds_end.delete(created.id)
        assert await panel_client.inbounds_end.get_all() == []

    @pytest.mark.asyncio
    async def test_unknown_keys_rejected_on_read(self, panel_client: PanelClient, fake_panel: FakePanel):
        created = await panel_client.inbounds_end.submit(reality_draft())
        fake_panel.inbounds[created.id]["streamSettings"]["kcpSettings"] = {}
        with pytest.raises(ValueError):
            await panel_client.inbounds_end.get(created.id)


class TestRealityEndpoints:
    """Remote TLS probe and key generation."""

    @pytest.mark.asyncio
    async def test_check_reality(self, panel_client: PanelClient, fake_panel: FakePanel):
        fake_panel.probe_results["www.apple.com"] = {
            "is_valid": True, "has_tls13": True, "key_exchange": "X25519", "latency": 120, "message": "ok",
        }
        result = await panel_client.inbounds_end.check_reality("www.apple.com")
        assert result == RealityProbeResult(is_valid=True, has_tls13=True, key_exchange="X25519",
                                            latency=120, message="ok")

    @pytest.mark.asyncio
    async def test_panel_probe_swallows_failures(self, panel_client: PanelClient):
        probe = panel_probe(panel_client.inbounds_end)
        assert await probe("unknown.example.com") is None

    @pytest.mark.asyncio
    async def test_full_check_through_panel(self, panel_client: PanelClient, fake_panel: FakePanel):
        fake_panel.probe_results["www.apple.com"] = {
            "is_valid": True, "has_tls13": True, "key_exchange": "X25519", "latency": 120, "message": "ok",
        }

        async def local(host, timeout):
            raise OSError("offline")

        checker = DomainChecker(panel_probe(panel_client.inbounds_end), local_probe=local)
        result = await checker.full_check("www.apple.com")
        assert result.is_valid
        assert result.score == 100

    @pytest.mark.asyncio
    async def test_new_reality_keys(self, panel_client: PanelClient):
        keys = await panel_client.xray_end.new_reality_keys()
        assert keys == {"privateKey": "cHJpdmF0ZQ==", "publicKey": "cHVibGlj"}

    @pytest.mark.asyncio
    async def test_server_keys_in_draft(self, panel_client: PanelClient, fake_panel: FakePanel):
        keys = await panel_client.xray_end.new_reality_keys()
        draft = reality_draft()
        draft.set_reality_keys(keys["privateKey"], keys["publicKey"])
        sent = await panel_client.inbounds_end.submit(draft)
        reality = sent.streamSettings.realitySettings
        assert (reality.privateKey, reality.publicKey) == ("cHJpdmF0ZQ==", "cHVibGlj")
