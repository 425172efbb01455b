"""Tests for switchyard.app — App lifecycle, ASGI entry, and end-to-end requests."""

import logging
from typing import Any

import anyio
import pytest

from switchyard.app import App
from switchyard.config import AppConfig
from switchyard.errors import HTTPError
from switchyard.testing import TestClient


class TestScenarios:
    async def test_route_params(self) -> None:
        app = App()

        @app.get("/users/:id")
        def show_user(req, res, next) -> None:
            res.json({"id": req.params["id"]})

        async with TestClient(app) as client:
            response = await client.get("/users/42")
        assert response.status == 200
        assert response.json() == {"id": "42"}

    async def test_wildcard(self) -> None:
        app = App()
        app.get("/static/*", lambda req, res, next: res.json(req.params))

        async with TestClient(app) as client:
            response = await client.get("/static/css/app.css")
        assert response.json() == {"*": "css/app.css"}

    async def test_no_routes_is_404(self) -> None:
        async with TestClient(App()) as client:
            response = await client.get("/anything")
        assert response.status == 404
        assert response.body == b'{"error":"Not Found","message":"Cannot GET /anything"}'
        assert response.content_type == "application/json; charset=utf-8"

    async def test_middleware_attaches_attributes(self) -> None:
        app = App()

        def tag(req, res, next) -> None:
            req.custom_property = "x"
            next()

        app.use(tag)
        app.get("/", lambda req, res, next: res.send(req.custom_property))

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.text == "x"

    async def test_json_body_is_decoded_before_handlers(self) -> None:
        app = App()
        seen: list[Any] = []

        def capture(req, res, next) -> None:
            seen.append(req.body)
            next()

        app.use(capture)
        app.post("/users", lambda req, res, next: res.status(201).json(req.body))

        async with TestClient(app) as client:
            response = await client.post("/users", json={"name": "John"})
        assert seen == [{"name": "John"}]
        assert response.status == 201
        assert response.json() == {"name": "John"}


class TestBodies:
    async def test_form_body(self) -> None:
        app = App()
        app.put("/profile", lambda req, res, next: res.json(req.body))

        async with TestClient(app) as client:
            response = await client.put("/profile", form={"name": "John", "age": "30"})
        assert response.json() == {"name": "John", "age": "30"}

    async def test_malformed_json_is_text(self) -> None:
        app = App()
        app.patch("/", lambda req, res, next: res.json({"body": req.body}))

        async with TestClient(app) as client:
            response = await client.patch(
                "/", body=b"{not json", headers={"content-type": "application/json"}
            )
        assert response.status == 200
        assert response.json() == {"body": "{not json"}

    async def test_chunked_body(self) -> None:
        app = App()
        app.post("/", lambda req, res, next: res.json(req.body))

        async with TestClient(app) as client:
            response = await client.request(
                "POST",
                "/",
                headers={"content-type": "application/json"},
                chunks=[b'{"a":', b"1}"],
            )
        assert response.json() == {"a": 1}

    async def test_get_has_no_body(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.json({"body": req.body}))

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.json() == {"body": None}

    async def test_too_large_skips_the_chain(self) -> None:
        runs: list[str] = []
        app = App(AppConfig(max_content_length=10))
        app.post("/", lambda req, res, next: runs.append("route") or res.end())

        async with TestClient(app) as client:
            response = await client.post("/", body=b"x" * 20)
        assert response.status == 413
        assert "10 bytes" in response.json()["message"]
        assert runs == []

    async def test_declared_length_over_limit(self) -> None:
        app = App(AppConfig(max_content_length=10))
        app.post("/", lambda req, res, next: res.end())

        async with TestClient(app) as client:
            response = await client.post("/", body=b"x", headers={"content-length": "999"})
        assert response.status == 413


class TestRequestAccess:
    async def test_query_and_headers(self) -> None:
        app = App()
        app.get(
            "/search",
            lambda req, res, next: res.json(
                {"q": req.query.get("q"), "agent": req.header("User-Agent")}
            ),
        )

        async with TestClient(app) as client:
            response = await client.get("/search?q=hello", headers={"User-Agent": "pytest"})
        assert response.json() == {"q": "hello", "agent": "pytest"}

    async def test_trailing_slash(self) -> None:
        app = App()
        app.get("/users", lambda req, res, next: res.send("users"))

        async with TestClient(app) as client:
            response = await client.get("/users/")
        assert response.text == "users"

    async def test_method_must_match(self) -> None:
        app = App()
        app.get("/users", lambda req, res, next: res.send("users"))

        async with TestClient(app) as client:
            response = await client.delete("/users")
        assert response.status == 404
        assert response.json()["message"] == "Cannot DELETE /users"

    async def test_all_matches_every_method(self) -> None:
        app = App()
        app.all("/ping", lambda req, res, next: res.send(req.method))

        async with TestClient(app) as client:
            assert (await client.post("/ping")).text == "POST"
            assert (await client.options("/ping")).text == "OPTIONS"


class TestResponses:
    async def test_cookies_round_trip(self) -> None:
        app = App()
        app.post("/login", lambda req, res, next: res.cookie("session", "abc", http_only=True).end())
        app.get("/me", lambda req, res, next: res.json(dict(req.cookies)))
        app.post("/logout", lambda req, res, next: res.clear_cookie("session").end())

        async with TestClient(app) as client:
            login = await client.post("/login")
            assert login.cookies == ["session=abc; HttpOnly"]
            assert (await client.get("/me")).json() == {"session": "abc"}
            await client.post("/logout")
            assert (await client.get("/me")).json() == {}

    async def test_redirect(self) -> None:
        app = App()
        app.get("/old", lambda req, res, next: res.redirect(301, "/new"))

        async with TestClient(app) as client:
            response = await client.get("/old")
        assert response.status == 301
        assert response.headers["location"] == "/new"
        assert response.body == b""

    async def test_head(self) -> None:
        app = App()
        app.head("/", lambda req, res, next: res.send("hello"))

        async with TestClient(app) as client:
            response = await client.head("/")
        assert response.status == 200
        assert response.headers["content-length"] == "5"
        assert response.body == b""

    async def test_response_flushed_before_handler_finishes(self) -> None:
        app = App()
        order: list[str] = []

        async def respond_then_work(req, res, next) -> None:
            res.send("early")
            await anyio.sleep(0.01)
            order.append("work done")

        app.get("/", respond_then_work)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.text == "early"
        assert order == ["work done"]


class TestErrors:
    async def test_unhandled_exception_is_500(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.ERROR, logger="switchyard.server")
        app = App()

        def boom(req, res, next) -> None:
            raise RuntimeError("boom")

        app.get("/", boom)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500
        assert response.json() == {"error": "Internal Server Error", "message": "boom"}
        assert "RuntimeError: boom" in caplog.text

    async def test_debug_mode_adds_stack(self) -> None:
        app = App(AppConfig(debug=True))
        app.get("/", lambda req, res, next: next(ValueError("bad")))

        async with TestClient(app) as client:
            response = await client.get("/")
        assert "ValueError: bad" in response.json()["stack"]

    async def test_http_error_headers_reach_the_client(self) -> None:
        app = App()

        def protected(req, res, next) -> None:
            raise HTTPError(status=401, detail="login", headers=(("WWW-Authenticate", "Basic"),))

        app.get("/", protected)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 401
        assert response.headers["www-authenticate"] == "Basic"

    async def test_error_handler(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: next(KeyError("user")))

        def on_error(err, req, res, next) -> None:
            res.status(400).json({"handled": type(err).__name__})

        app.error(on_error)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 400
        assert response.json() == {"handled": "KeyError"}

    async def test_unencodable_header_is_a_handler_error(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.set_header("X-Name", "日本").send("hi"))

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500
        assert "latin-1" in response.json()["message"]

    async def test_non_ascii_redirect_reaches_the_client(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.redirect("/日本"))

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 302
        assert response.headers["location"] == "/%E6%97%A5%E6%9C%AC"

    async def test_handler_timeout(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="switchyard.server")
        app = App(AppConfig(handler_timeout=0.05))
        app.get("/", lambda req, res, next: None)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 503
        assert response.json() == {
            "error": "Service Unavailable",
            "message": "Request timed out",
        }
        assert "did not respond" in caplog.text


class TestFreeze:
    async def test_registration_after_first_request(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.end())

        async with TestClient(app) as client:
            await client.get("/")

        assert app.frozen
        with pytest.raises(RuntimeError, match="Cannot modify the app"):
            app.get("/late", lambda req, res, next: res.end())
        with pytest.raises(RuntimeError):
            app.use(lambda req, res, next: next())

    async def test_decorator_after_freeze(self) -> None:
        app = App()
        app._ensure_frozen()
        with pytest.raises(RuntimeError):

            @app.get("/late")
            def late(req, res, next) -> None:
                res.end()

    def test_repr(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.end())
        assert repr(app) == "<App 1 entries, setup>"
        app._ensure_frozen()
        assert repr(app) == "<App 1 entries, frozen>"

    def test_config_default(self) -> None:
        assert App().config == AppConfig()


async def _lifespan(app: App, *messages: str) -> list[dict[str, Any]]:
    """Drive the lifespan protocol with *messages*; return what the app sent."""
    sent: list[dict[str, Any]] = []
    incoming = iter([{"type": m} for m in messages])

    async def receive() -> dict[str, Any]:
        return next(incoming)

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    scope: dict[str, Any] = {"type": "lifespan", "asgi": {"version": "3.0"}}
    await app(scope, receive, send)
    return sent


class TestLifespan:
    async def test_hooks_run(self) -> None:
        app = App()
        calls: list[str] = []

        @app.on_startup
        async def startup() -> None:
            calls.append("startup")

        @app.on_shutdown
        def shutdown() -> None:
            calls.append("shutdown")

        sent = await _lifespan(app, "lifespan.startup", "lifespan.shutdown")
        assert calls == ["startup", "shutdown"]
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert app.frozen

    async def test_failed_startup(self) -> None:
        app = App()

        @app.on_startup
        def broken() -> None:
            raise RuntimeError("no database")

        sent = await _lifespan(app, "lifespan.startup")
        assert sent == [{"type": "lifespan.startup.failed", "message": "no database"}]

    async def test_test_client_runs_hooks(self) -> None:
        app = App()
        calls: list[str] = []
        app.on_startup(lambda: calls.append("startup"))
        app.on_shutdown(lambda: calls.append("shutdown"))

        async with TestClient(app):
            assert calls == ["startup"]
        assert calls == ["startup", "shutdown"]

    async def test_unknown_scope_is_ignored(self) -> None:
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            raise AssertionError("should not be called")

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await App()({"type": "websocket"}, receive, send)
        assert sent == []
