"""Shared helpers for webhook consumer tests: known-answer fixture and a fake producer."""

from __future__ import annotations

import json
import time
from typing import Any

import httpx

from webhook_consumer.webhooks.signature import generate_secret, sign_payload

# Known-answer fixture (Svix test vector)
FIXTURE_SECRET = "whsec_AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
FIXTURE_MESSAGE_ID = "msg_1"
FIXTURE_TIMESTAMP = 1614265330
FIXTURE_BODY = b'{"test": 2432232314}'
FIXTURE_SIGNATURE = "v1,Bl1a0SVt78DCV06Rvr6oSEMbCaFysVu27en9cW0mNBI="

PUBLIC_BASE_URL = "https://consumer.example.com"
PRODUCER_BASE_URL = "http://producer.test"


def signed_headers(
    body: bytes,
    secret: str,
    message_id: str = "msg_test",
    timestamp: int | None = None,
    prefix: str = "svix",
) -> dict[str, str]:
    """Headers a producer would send for ``body``."""
    if timestamp is None:
        timestamp = int(time.time())
    return {
        f"{prefix}-id": message_id,
        f"{prefix}-timestamp": str(timestamp),
        f"{prefix}-signature": sign_payload(body, secret, message_id, timestamp),
        "content-type": "application/json",
    }


class FakeProducer:
    """In-memory producer API served through ``httpx.MockTransport``.

    Attributes:
        endpoints: Registered endpoints by id
        secrets: Secrets by endpoint id
        inline_secret: Return the secret in the subscribe response
        failing: Operations that answer 500 ("subscribe", "get_secret", ...)
        replies: Operations that answer 200 with a fixed JSON body instead
        secret_failures: Endpoint ids whose secret lookup answers 404
        requests: Every request received
    """

    def __init__(self) -> None:
        self.endpoints: dict[str, dict[str, Any]] = {}
        self.secrets: dict[str, str] = {}
        self.inline_secret = True
        self.failing: set[str] = set()
        self.replies: dict[str, dict[str, Any]] = {}
        self.secret_failures: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._next_id = 1

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def add_endpoint(self, url: str, secret: str | None = None) -> str:
        endpoint_id = f"ep_{self._next_id}"
        self._next_id += 1
        self.endpoints[endpoint_id] = {
            "id": endpoint_id,
            "url": url,
            "description": None,
            "eventKinds": [],
            "disabled": False,
        }
        self.secrets[endpoint_id] = secret or generate_secret()
        return endpoint_id

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/producer/subscribe":
            if "subscribe" in self.failing:
                return httpx.Response(500, text="subscribe exploded")
            if "subscribe" in self.replies:
                return httpx.Response(200, json=self.replies["subscribe"])
            body = json.loads(request.content)
            endpoint_id = self.add_endpoint(body["webhookUrl"])
            self.endpoints[endpoint_id]["eventKinds"] = body.get("eventKinds", [])
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "endpointId": endpoint_id,
                    "secret": self.secrets[endpoint_id] if self.inline_secret else None,
                },
            )

        if request.method == "GET" and path == "/producer/secret":
            endpoint_id = request.url.params.get("endpointId", "")
            if "get_secret" in self.failing:
                return httpx.Response(500, text="secret lookup exploded")
            if endpoint_id in self.secret_failures or endpoint_id not in self.secrets:
                return httpx.Response(404, json={"success": False, "message": "not found"})
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "endpointId": endpoint_id,
                    "secret": self.secrets[endpoint_id],
                },
            )

        if request.method == "DELETE" and path.startswith("/producer/unsubscribe/"):
            endpoint_id = path.rsplit("/", 1)[-1]
            if "unsubscribe" in self.failing:
                return httpx.Response(500, text="unsubscribe exploded")
            if "unsubscribe" in self.replies:
                return httpx.Response(200, json=self.replies["unsubscribe"])
            if endpoint_id not in self.endpoints:
                return httpx.Response(404, json={"success": False, "message": "not found"})
            del self.endpoints[endpoint_id]
            self.secrets.pop(endpoint_id, None)
            return httpx.Response(200, json={"success": True})

        if request.method == "GET" and path.startswith("/producer/endpoint/"):
            endpoint_id = path.rsplit("/", 1)[-1]
            if "get_endpoint" in self.failing or endpoint_id not in self.endpoints:
                return httpx.Response(404, json={"success": False, "message": "not found"})
            return httpx.Response(200, json=self.endpoints[endpoint_id])

        if request.method == "GET" and path == "/producer/endpoints":
            if "list_endpoints" in self.failing:
                return httpx.Response(503, text="unavailable")
            if "list_endpoints" in self.replies:
                return httpx.Response(200, json=self.replies["list_endpoints"])
            return httpx.Response(
                200,
                json={"success": True, "endpoints": list(self.endpoints.values())},
            )

        return httpx.Response(404, text="no route")
