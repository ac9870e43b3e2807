# tests/test_api.py
"""Tests for the relay FastAPI endpoints."""

import json

import pytest
from httpx import ASGITransport, AsyncClient

from src.core.auth import ApiKeyRecord, sign_body
from src.core.commands import BotPersona
from src.core.policy import BotConfiguration

LEGACY = {"x-commandless-key": "legacy-key"}


def client_for(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestEventsEndpoint:
    """Tests for POST /v1/relay/events."""

    @pytest.mark.asyncio
    async def test_slash_event_returns_decision(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                json={"type": "messageCreate", "content": "/ban user=42 reason=spam", "channelId": "c1"},
                headers=LEGACY,
            )

        assert response.status_code == 200
        decision = response.json()["decision"]
        assert decision["intent"] == "command.request"
        assert decision["confidence"] == 0.99
        assert decision["actions"] == [
            {
                "kind": "command",
                "slash": "/ban user=42 reason=spam",
                "name": "ban",
                "args": {"user": "42", "reason": "spam"},
            }
        ]
        assert response.headers["x-request-id"] == decision["id"]
        assert api_env.llm.call_count == 0

    @pytest.mark.asyncio
    async def test_x_api_key_header_accepted(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                json={"content": "/help", "channelId": "c1"},
                headers={"x-api-key": "legacy-key"},
            )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_key_is_401(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events", json={"content": "hi", "channelId": "c1"}
            )
        assert response.status_code == 401
        assert "detail" in response.json()

    @pytest.mark.asyncio
    async def test_unknown_key_is_401(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                json={"content": "hi", "channelId": "c1"},
                headers={"x-commandless-key": "nope"},
            )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_scope_is_403(self, api_env) -> None:
        api_env.repo.create_api_key(
            ApiKeyRecord(key_id="ck_cfg", tenant_id="t1", scopes=frozenset({"relay:config"}))
        )
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                json={"content": "hi", "channelId": "c1"},
                headers={"x-commandless-key": "ck_cfg"},
            )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_foreign_bot_is_403(self, api_env) -> None:
        api_env.repo.upsert_bot(BotPersona(bot_id="other-bot", tenant_id="someone-else"))
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                json={"content": "hi", "channelId": "c1", "botId": "other-bot"},
                headers=LEGACY,
            )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_idempotent_retry_returns_same_decision(self, api_env) -> None:
        headers = {**LEGACY, "x-idempotency-key": "evt-1"}
        body = {"content": "/purge 5", "channelId": "c1"}

        async with client_for(api_env.app) as client:
            first = await client.post("/v1/relay/events", json=body, headers=headers)
            second = await client.post("/v1/relay/events", json=body, headers=headers)

        assert first.json()["decision"]["id"] == second.json()["decision"]["id"]
        assert first.headers["x-request-id"] == second.headers["x-request-id"]

    @pytest.mark.asyncio
    async def test_idempotency_key_not_shared_across_tenants(self, api_env) -> None:
        api_env.repo.create_api_key(ApiKeyRecord(key_id="ck_other", tenant_id="tenant-other"))
        body = {"content": "/purge 5", "channelId": "c1"}

        async with client_for(api_env.app) as client:
            first = await client.post(
                "/v1/relay/events", json=body, headers={**LEGACY, "x-idempotency-key": "evt-1"}
            )
            second = await client.post(
                "/v1/relay/events",
                json=body,
                headers={"x-commandless-key": "ck_other", "x-idempotency-key": "evt-1"},
            )

        assert first.json()["decision"]["id"] != second.json()["decision"]["id"]

    @pytest.mark.asyncio
    async def test_no_intent_returns_null(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                json={"content": "nice weather", "channelId": "c1"},
                headers=LEGACY,
            )

        assert response.status_code == 200
        assert response.json() == {"decision": None}
        assert response.headers["x-request-id"].startswith("req_")

    @pytest.mark.asyncio
    async def test_disabled_bot(self, api_env) -> None:
        api_env.repo.upsert_bot(BotPersona(bot_id="b1", tenant_id="tenant-legacy"))
        api_env.repo.save_configuration(BotConfiguration(bot_id="b1", enabled=False))

        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                json={"content": "hello", "channelId": "c1", "botId": "b1"},
                headers=LEGACY,
            )

        decision = response.json()["decision"]
        assert decision["intent"] == "disabled"
        assert decision["actions"][0]["kind"] == "reply"
        assert decision["actions"][0]["ephemeral"] is True
        assert api_env.llm.call_count == 0

    @pytest.mark.asyncio
    async def test_billable_decision_reported(self, api_env) -> None:
        calls = []

        async def fake_report(*args):
            calls.append(args)
            return True

        api_env.reporter.report = fake_report
        headers = {**LEGACY, "x-idempotency-key": "evt-9"}

        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                json={"content": "/kick user=1", "channelId": "c1"},
                headers=headers,
            )
            await client.post(
                "/v1/relay/events",
                json={"content": "/kick user=1", "channelId": "c1"},
                headers=headers,
            )

        decision = response.json()["decision"]
        assert calls == [("tenant-legacy", None, "evt-9", decision["id"], "command.request")]


class TestSignatures:
    """Signature policy on the events endpoint."""

    body = json.dumps({"content": "/help", "channelId": "c1"}).encode()

    @pytest.mark.asyncio
    async def test_log_only_allows_bad_signature(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                content=self.body,
                headers={**LEGACY, "content-type": "application/json", "x-signature": "bad"},
            )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_enforce_rejects_bad_signature(self, api_env, monkeypatch) -> None:
        monkeypatch.setattr(api_env.settings, "signature_mode", "enforce")
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                content=self.body,
                headers={**LEGACY, "content-type": "application/json", "x-signature": "bad"},
            )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_enforce_accepts_valid_signature(self, api_env, monkeypatch) -> None:
        monkeypatch.setattr(api_env.settings, "signature_mode", "enforce")
        signature = sign_body(self.body, "legacy-secret")
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/events",
                content=self.body,
                headers={**LEGACY, "content-type": "application/json", "x-signature": signature},
            )
        assert response.status_code == 200


class TestConfigEndpoint:
    """Tests for GET /v1/relay/config."""

    @pytest.mark.asyncio
    async def test_config_created_lazily(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.get("/v1/relay/config", params={"botId": "b1"}, headers=LEGACY)

        data = response.json()
        assert response.status_code == 200
        assert data["upToDate"] is False
        assert data["version"] == 1
        assert data["config"]["enabled"] is True
        assert data["config"]["confidenceThreshold"] == 0.70
        assert api_env.repo.get_configuration("b1") is not None

    @pytest.mark.asyncio
    async def test_up_to_date(self, api_env) -> None:
        api_env.repo.ensure_configuration("b1")
        async with client_for(api_env.app) as client:
            response = await client.get(
                "/v1/relay/config", params={"botId": "b1", "version": 1}, headers=LEGACY
            )
        assert response.json() == {"upToDate": True, "version": 1}

    @pytest.mark.asyncio
    async def test_missing_bot_id_is_400(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.get("/v1/relay/config", headers=LEGACY)
        assert response.status_code == 400


class TestBotLifecycle:
    """Tests for register, heartbeat and sync-request."""

    @pytest.mark.asyncio
    async def test_register_creates_bot(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/register",
                json={"platform": "discord", "name": "Mod", "clientId": "app-1"},
                headers=LEGACY,
            )

        bot_id = response.json()["botId"]
        bot = api_env.repo.get_bot(bot_id)
        assert bot.tenant_id == "tenant-legacy"
        assert bot.client_id == "app-1"
        assert bot.connected is True

    @pytest.mark.asyncio
    async def test_register_matches_client_id(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            first = await client.post(
                "/v1/relay/register", json={"clientId": "app-1"}, headers=LEGACY
            )
            second = await client.post(
                "/v1/relay/register", json={"clientId": "app-1"}, headers=LEGACY
            )
        assert first.json()["botId"] == second.json()["botId"]

    @pytest.mark.asyncio
    async def test_register_key_bound_bot_wins(self, api_env) -> None:
        api_env.repo.create_api_key(
            ApiKeyRecord(key_id="ck_bound", tenant_id="t1", bot_id="bound-bot")
        )
        async with client_for(api_env.app) as client:
            response = await client.post(
                "/v1/relay/register",
                json={"botId": "something-else"},
                headers={"x-commandless-key": "ck_bound"},
            )
        assert response.json() == {"botId": "bound-bot"}

    @pytest.mark.asyncio
    async def test_heartbeat_clears_pending_sync(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            marked = await client.post(
                "/v1/relay/sync-request", json={"botId": "b1"}, headers=LEGACY
            )
            first = await client.post("/v1/relay/heartbeat", json={"botId": "b1"}, headers=LEGACY)
            second = await client.post("/v1/relay/heartbeat", json={"botId": "b1"}, headers=LEGACY)

        assert marked.json() == {"ok": True}
        assert first.json() == {"ok": True, "syncRequested": True}
        assert second.json() == {"ok": True, "syncRequested": False}

    @pytest.mark.asyncio
    async def test_sync_request_requires_bot(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.post("/v1/relay/sync-request", json={}, headers=LEGACY)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_lifecycle_routes_check_scopes(self, api_env) -> None:
        api_env.repo.create_api_key(
            ApiKeyRecord(key_id="ck_cfg", tenant_id="t1", scopes=frozenset({"relay:config"}))
        )
        api_env.repo.create_api_key(
            ApiKeyRecord(key_id="ck_evt", tenant_id="t1", scopes=frozenset({"relay:events"}))
        )
        config_key = {"x-commandless-key": "ck_cfg"}
        events_key = {"x-commandless-key": "ck_evt"}

        async with client_for(api_env.app) as client:
            register = await client.post(
                "/v1/relay/register", json={"clientId": "app-1"}, headers=config_key
            )
            beat = await client.post("/v1/relay/heartbeat", json={"botId": "b1"}, headers=config_key)
            sync_denied = await client.post(
                "/v1/relay/sync-request", json={"botId": "b1"}, headers=events_key
            )
            sync_allowed = await client.post(
                "/v1/relay/sync-request", json={"botId": "b1"}, headers=config_key
            )

        assert register.status_code == 403
        assert beat.status_code == 403
        assert sync_denied.status_code == 403
        assert sync_allowed.json() == {"ok": True}


class TestHealth:
    """Tests for GET /health."""

    @pytest.mark.asyncio
    async def test_health(self, api_env) -> None:
        async with client_for(api_env.app) as client:
            response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
