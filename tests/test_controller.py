"""
Controller configuration: route registration, dispatch, middleware modes.
"""

import pytest
from fastapi import Request, Response
from fastapi.testclient import TestClient
from pydantic import ValidationError

from core.controller import Controller, MiddlewareMode


def test_new_controller_defaults(settings) -> None:
    controller = Controller(settings=settings)
    assert controller.routes == ()
    assert controller.middleware_mode is MiddlewareMode.DEFAULT_AUTH
    assert controller.auth_callback is None
    assert controller.running is False
    assert controller.bound_address is None


def test_add_handler_normalizes_methods(settings) -> None:
    controller = Controller(settings=settings)
    entry = controller.add_handler("/items", lambda: {}, ["get", "POST", "GET"])
    assert entry.methods == ("GET", "POST")
    assert controller.routes == (entry,)


def test_add_handler_accepts_single_method_string(settings) -> None:
    controller = Controller(settings=settings)
    entry = controller.add_handler("/items", lambda: {}, "delete")
    assert entry.methods == ("DELETE",)


@pytest.mark.parametrize("methods", [[], (), ["GET", "BAD METHOD"], ["G(T"], [""]])
def test_add_handler_rejects_invalid_methods(settings, methods) -> None:
    controller = Controller(settings=settings)
    with pytest.raises(ValidationError):
        controller.add_handler("/items", lambda: {}, methods)
    assert controller.routes == ()


def test_add_handler_rejects_relative_path(settings) -> None:
    controller = Controller(settings=settings)
    with pytest.raises(ValueError):
        controller.add_handler("items", lambda: {}, ["GET"])


def test_same_path_different_methods_resolve_independently(settings) -> None:
    controller = Controller(settings=settings)

    async def read_item() -> dict:
        return {"handler": "read"}

    async def write_item() -> dict:
        return {"handler": "write"}

    controller.add_handler("/items/{item_id}", read_item, ["GET"])
    controller.add_handler("/items/{item_id}", write_item, ["PUT"])
    client = TestClient(controller.build_app())

    assert client.get("/items/7").json() == {"handler": "read"}
    assert client.put("/items/7").json() == {"handler": "write"}
    assert client.delete("/items/7").status_code == 405


def test_unknown_path_is_404(settings) -> None:
    controller = Controller(settings=settings)
    controller.add_handler("/items", lambda: {}, ["GET"])
    assert TestClient(controller.build_app()).get("/nope").status_code == 404


def test_path_parameters_reach_handler(settings) -> None:
    controller = Controller(settings=settings)

    async def show(request: Request) -> dict:
        return {"id": request.path_params["item_id"]}

    controller.add_handler("/items/{item_id}", show, ["GET"])
    assert TestClient(controller.build_app()).get("/items/abc").json() == {"id": "abc"}


def test_sync_handler(settings) -> None:
    controller = Controller(settings=settings)

    def plain() -> dict:
        return {"sync": True}

    controller.add_handler("/plain", plain, ["GET"])
    assert TestClient(controller.build_app()).get("/plain").json() == {"sync": True}


def test_unhandled_handler_exception_is_500(settings) -> None:
    controller = Controller(settings=settings)

    async def boom() -> dict:
        raise RuntimeError("boom")

    controller.add_handler("/boom", boom, ["GET"])
    client = TestClient(controller.build_app(), raise_server_exceptions=False)
    r = client.get("/boom")
    assert r.status_code == 500
    assert r.json() == {"detail": "Internal server error"}


def test_set_middleware_replaces_default_auth(settings) -> None:
    order: list[str] = []

    async def outer(request: Request, call_next) -> Response:
        order.append("outer")
        response = await call_next(request)
        response.headers["X-Outer"] = "1"
        return response

    async def inner(request: Request, call_next) -> Response:
        order.append("inner")
        return await call_next(request)

    async def handler() -> dict:
        order.append("handler")
        return {}

    controller = Controller(auth_callback=lambda token: "never", settings=settings)
    controller.add_handler("/x", handler, ["GET"])
    controller.set_middleware(outer, inner)
    assert controller.middleware_mode is MiddlewareMode.CUSTOM_CHAIN

    r = TestClient(controller.build_app()).get("/x")
    assert r.status_code == 200
    assert r.headers["X-Outer"] == "1"
    assert "X-ID" not in r.headers
    assert order == ["outer", "inner", "handler"]


def test_custom_middleware_can_short_circuit(settings) -> None:
    handled: list[str] = []

    async def deny(request: Request, call_next) -> Response:
        return Response(status_code=403)

    async def handler() -> dict:
        handled.append("handler")
        return {}

    controller = Controller(middleware=[deny], settings=settings)
    controller.add_handler("/x", handler, ["GET"])
    assert controller.middleware_mode is MiddlewareMode.CUSTOM_CHAIN
    assert TestClient(controller.build_app()).get("/x").status_code == 403
    assert handled == []


def test_empty_custom_chain_disables_auth(settings) -> None:
    controller = Controller(auth_callback=lambda token: "user", settings=settings)
    controller.add_handler("/x", lambda: {"ok": True}, ["GET"])
    controller.set_middleware()
    r = TestClient(controller.build_app()).get("/x")
    assert r.status_code == 200


def test_non_callable_middleware_rejected(settings) -> None:
    controller = Controller(middleware=["not-a-middleware"], settings=settings)
    with pytest.raises(TypeError):
        controller.build_app()


def test_build_app_snapshots_routes(settings) -> None:
    controller = Controller(settings=settings)
    controller.add_handler("/a", lambda: {}, ["GET"])
    client = TestClient(controller.build_app())
    controller.add_handler("/b", lambda: {}, ["GET"])
    assert client.get("/a").status_code == 200
    assert client.get("/b").status_code == 404
    assert TestClient(controller.build_app()).get("/b").status_code == 200


def test_docs_hidden_unless_debug(settings) -> None:
    controller = Controller(settings=settings)
    assert TestClient(controller.build_app()).get("/openapi.json").status_code == 404
    settings.DEBUG = True
    assert TestClient(controller.build_app()).get("/openapi.json").status_code == 200


def test_auth_runs_before_routing(settings) -> None:
    controller = Controller(auth_callback=lambda token: "user-1", settings=settings)
    controller.add_handler("/items", lambda: {}, ["GET"])
    client = TestClient(controller.build_app())
    assert client.get("/missing").status_code == 400
    assert client.get("/missing", headers={"Authorization": "Bearer abc"}).status_code == 404
    assert client.post("/items", headers={"Authorization": "Bearer abc"}).status_code == 405
