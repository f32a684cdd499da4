"""
端到端测试: 会话中间件 + CSRF中间件 + 路由
"""
import httpx
import pytest

from flawless_csrf import CSRFError, FlawlessApp, csrf_protect
from flawless_csrf.session.memory import MemorySessionStore


def create_app(**csrf_options):
    app = FlawlessApp(log_level="WARNING").with_csrf(csrf_options or None)

    @app.route("/check", methods=["POST"])
    async def check(request):
        return {"code": 200, "valid": await request.csrf.verify_request(request)}

    @app.route("/submit", methods=["POST"])
    async def submit(request):
        if not await request.csrf.verify_request(request):
            raise CSRFError()
        return {"code": 200, "message": "ok"}

    @app.route("/protected", methods=["POST", "GET"])
    @csrf_protect
    async def protected(request):
        return {"code": 200, "message": "protected"}

    @app.route("/form", methods=["GET"])
    async def form(request):
        return {"code": 200, "field": request.csrf.get_token_field()}

    return app


def client_for(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


async def fetch_token(client):
    response = await client.get("/_csrf")
    assert response.status_code == 200
    return response.json()["data"]["token"]


@pytest.mark.asyncio
class TestApp:
    """默认配置: 中间件只暴露校验能力"""

    async def test_token_route_starts_session(self):
        async with client_for(create_app()) as client:
            response = await client.get("/_csrf")
            data = response.json()["data"]

            assert response.status_code == 200
            assert "session_id" in response.cookies
            assert data["token"]
            assert data["field_name"] == "_token"
            assert data["header_name"] == "X-CSRF-Token"
            assert data["expire"] == 3600

    async def test_token_is_stable_within_session(self):
        async with client_for(create_app()) as client:
            assert await fetch_token(client) == await fetch_token(client)

    async def test_new_client_gets_new_token(self):
        app = create_app()
        async with client_for(app) as first, client_for(app) as second:
            assert await fetch_token(first) != await fetch_token(second)

    async def test_invalid_token_passes_through_to_handler(self):
        async with client_for(create_app()) as client:
            await fetch_token(client)
            response = await client.post("/check", headers={"X-CSRF-Token": "invalid_token"})
            assert response.status_code == 200
            assert response.json()["valid"] is False

    async def test_valid_header_token(self):
        async with client_for(create_app()) as client:
            token = await fetch_token(client)
            response = await client.post("/check", headers={"X-CSRF-Token": token})
            assert response.json()["valid"] is True

    async def test_valid_form_token(self):
        async with client_for(create_app()) as client:
            token = await fetch_token(client)
            response = await client.post("/submit", data={"_token": token})
            assert response.status_code == 200
            assert response.json()["message"] == "ok"

    async def test_valid_json_token(self):
        async with client_for(create_app()) as client:
            token = await fetch_token(client)
            response = await client.post("/submit", json={"_token": token})
            assert response.status_code == 200

    async def test_handler_rejection(self):
        async with client_for(create_app()) as client:
            await fetch_token(client)
            response = await client.post("/submit", data={"_token": "invalid_token"})
            assert response.status_code == 419
            assert response.json()["message"] == "CSRF token mismatch"

    async def test_token_from_other_session_rejected(self):
        app = create_app()
        async with client_for(app) as victim, client_for(app) as attacker:
            await fetch_token(victim)
            attacker_token = await fetch_token(attacker)
            response = await victim.post("/check", headers={"X-CSRF-Token": attacker_token})
            assert response.json()["valid"] is False

    async def test_csrf_protect_decorator(self):
        async with client_for(create_app()) as client:
            token = await fetch_token(client)
            assert (await client.get("/protected")).status_code == 200
            assert (await client.post("/protected")).status_code == 419
            ok = await client.post("/protected", headers={"X-CSRF-Token": token})
            assert ok.status_code == 200

    async def test_hidden_field(self):
        async with client_for(create_app()) as client:
            token = await fetch_token(client)
            field = (await client.get("/form")).json()["field"]
            assert f'value="{token}"' in field

    async def test_not_found_and_method_not_allowed(self):
        async with client_for(create_app()) as client:
            assert (await client.get("/missing")).status_code == 404
            assert (await client.get("/submit")).status_code == 405

    async def test_session_store_failure_is_reported(self):
        class BrokenStore(MemorySessionStore):
            async def load(self, session_id):
                raise ConnectionError("store unavailable")

        app = FlawlessApp(log_level="CRITICAL").with_csrf(session_store=BrokenStore())
        async with client_for(app) as client:
            response = await client.get("/_csrf", headers={"Cookie": "session_id=" + "a" * 43})
            assert response.status_code == 500
            assert "error_id" in response.json()["data"]


@pytest.mark.asyncio
class TestEnforcingApp:
    """check_body_and_header 开启时中间件直接拒绝"""

    async def test_rejects_missing_token(self):
        async with client_for(create_app(check_body_and_header=True)) as client:
            await fetch_token(client)
            response = await client.post("/check")
            assert response.status_code == 419

    async def test_accepts_valid_token(self):
        async with client_for(create_app(check_body_and_header=True)) as client:
            token = await fetch_token(client)
            response = await client.post("/check", data={"_token": token})
            assert response.status_code == 200
            assert response.json()["valid"] is True

    async def test_rejected_request_still_saves_session(self):
        app = create_app(check_body_and_header=True)
        async with client_for(app) as client:
            response = await client.post("/check")
            assert response.status_code == 419
            assert "session_id" in response.cookies
            # 被拒绝的请求也签发了令牌,后续请求可以使用
            token = await fetch_token(client)
            assert (await client.post("/check", headers={"X-CSRF-Token": token})).status_code == 200


@pytest.mark.asyncio
class TestSessionPersistence:
    """会话在响应发出前写入存储"""

    async def test_session_saved_before_response_start(self):
        store = MemorySessionStore()
        app = FlawlessApp(log_level="WARNING").with_csrf(session_store=store)
        sizes = []

        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message):
            if message["type"] == "http.response.start":
                sizes.append(store.get_stats()["size"])

        scope = {"type": "http", "method": "GET", "path": "/_csrf", "query_string": b"", "headers": []}
        await app(scope, receive, send)
        assert sizes == [1]

    async def test_token_verifies_on_next_request(self):
        store = MemorySessionStore()
        app = FlawlessApp(log_level="WARNING").with_csrf(session_store=store)

        @app.route("/check", methods=["POST"])
        async def check(request):
            return {"code": 200, "valid": await request.csrf.verify_request(request)}

        async with client_for(app) as client:
            token = await fetch_token(client)
            response = await client.post("/check", data={"_token": token})
            assert response.json()["valid"] is True
            # 已有会话的响应也会续期cookie
            assert "session_id" in response.cookies

    async def test_lifespan_closes_store(self):
        store = MemorySessionStore()
        app = FlawlessApp(log_level="WARNING").with_csrf(session_store=store)
        await store.save("sid", {})
        messages = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent = []

        async def receive():
            return messages.pop(0)

        async def send(message):
            sent.append(message["type"])

        await app({"type": "lifespan"}, receive, send)
        assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
        assert store.get_stats()["size"] == 0
