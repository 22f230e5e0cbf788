"""Shared fixtures: controller settings and an in-memory fake controller."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from unifi_controller.config import ControllerSettings


class FakeController:
    """In-memory UniFi controller behind an httpx.MockTransport.

    Logins issue ``session-<n>``/``csrf-<n>`` tokens; only the latest session
    token is accepted. Resource calls echo their path back inside the usual
    ``{"meta": ..., "data": [...]}`` wrapper.
    """

    def __init__(
        self,
        login_delay: float = 0.0,
        login_status: int = 200,
        reject_all: bool = False,
        send_csrf: bool = True,
    ) -> None:
        self.login_delay = login_delay
        self.login_status = login_status
        self.reject_all = reject_all
        self.send_csrf = send_csrf
        self.logins = 0
        self.valid_token: Optional[str] = None
        self.requests: List[httpx.Request] = []
        self.errors: Dict[str, Tuple[int, Any]] = {}
        self.data: Dict[str, Any] = {}
        self.pages: Dict[str, str] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def resource_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if not r.url.path.endswith(("/login", "/logout"))]

    def login_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/login")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/login"):
            self.logins += 1
            if self.login_delay:
                await asyncio.sleep(self.login_delay)
            if self.login_status != 200:
                return httpx.Response(
                    self.login_status,
                    json={"meta": {"rc": "error", "msg": "api.err.Invalid"}, "data": []},
                )
            self.valid_token = f"session-{self.logins}"
            headers = [("set-cookie", f"unifises={self.valid_token}; Path=/; Secure; HttpOnly")]
            if self.send_csrf:
                headers.append(("set-cookie", f"csrf_token=csrf-{self.logins}; Path=/; Secure"))
            return httpx.Response(200, json={"meta": {"rc": "ok"}, "data": []}, headers=headers)

        cookie = request.headers.get("cookie", "")
        authorized = self.valid_token is not None and f"unifises={self.valid_token};" in cookie
        if self.reject_all or not authorized:
            return httpx.Response(
                401,
                json={"meta": {"rc": "error", "msg": "api.err.LoginRequired"}, "data": []},
            )

        if path in self.pages:
            return httpx.Response(
                200, text=self.pages[path], headers={"content-type": "text/html"}
            )

        if path in self.errors:
            status, body = self.errors[path]
            return httpx.Response(status, json=body)

        if path in self.data:
            return httpx.Response(200, json={"meta": {"rc": "ok"}, "data": self.data[path]})

        return httpx.Response(200, json={"meta": {"rc": "ok"}, "data": [{"path": path}]})


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


@pytest.fixture
def settings() -> ControllerSettings:
    return ControllerSettings(
        base_url="https://unifi.test:8443",
        username="admin",
        password="secret",
        verify_ssl=False,
    )


@pytest.fixture
def fake() -> FakeController:
    return FakeController()
