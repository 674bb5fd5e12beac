"""End-to-end route tests: TestClient -> gateway -> FakeCopilot."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from copilot_gateway.core.registry import GatewayState
from copilot_gateway.core.upstream_transport import mounted_upstream
from copilot_gateway.main import create_app
from copilot_gateway.testing import (
    FAKE_COPILOT_HOST,
    FakeTokenizer,
    UpstreamResponse,
    build_chat_chunk,
    build_model,
)

from conftest import build_test_settings


def _messages_request(**overrides):
    payload = {
        "model": "claude-sonnet-4-20250514",
        "max_tokens": 256,
        "messages": [{"role": "user", "content": "Hello"}],
    }
    payload.update(overrides)
    return payload


def _parse_events(body: str) -> list[dict]:
    events = []
    for block in body.strip().split("\n\n"):
        lines = block.split("\n")
        event_line = next((line for line in lines if line.startswith("event: ")), None)
        data_line = next((line for line in lines if line.startswith("data: ")), None)
        if event_line and data_line:
            events.append({"event": event_line[7:], "data": json.loads(data_line[6:])})
    return events


class TestMessagesEndpoint:
    def test_non_streaming_round_trip(self, gateway_client, fake_copilot):
        fake_copilot.enqueue_chat_response(
            "Hi there",
            usage={"prompt_tokens": 20, "completion_tokens": 5, "prompt_tokens_details": {"cached_tokens": 8}},
        )

        response = gateway_client.post("/v1/messages", json=_messages_request(system="Be nice"))

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "message"
        assert body["content"] == [{"type": "text", "text": "Hi there"}]
        assert body["stop_reason"] == "end_turn"
        assert body["usage"] == {"input_tokens": 12, "output_tokens": 5, "cache_read_input_tokens": 8}

        upstream_payload = fake_copilot.received[0]["json"]
        assert upstream_payload["model"] == "claude-sonnet-4"
        assert upstream_payload["snippy"] == {"enabled": False}
        assert upstream_payload["messages"][0]["copilot_cache_control"] == {"type": "ephemeral"}

    def test_variant_from_beta_header(self, gateway_client, fake_copilot):
        fake_copilot.enqueue_chat_response("ok")

        gateway_client.post(
            "/v1/messages",
            json=_messages_request(model="claude-opus-4-6"),
            headers={"anthropic-beta": "fast-mode-2026-02-01"},
        )

        assert fake_copilot.received[0]["json"]["model"] == "claude-opus-4.6-fast"

    def test_tool_use_response(self, gateway_client, fake_copilot):
        fake_copilot.enqueue_chat_response(
            None,
            tool_calls=[{"id": "call_1", "type": "function",
                         "function": {"name": "get_weather", "arguments": '{"city": "Oslo"}'}}],
            finish_reason="tool_calls",
        )

        body = gateway_client.post("/v1/messages", json=_messages_request()).json()

        assert body["stop_reason"] == "tool_use"
        assert body["content"] == [
            {"type": "tool_use", "id": "call_1", "name": "get_weather", "input": {"city": "Oslo"}}
        ]

    def test_streaming(self, gateway_client, fake_copilot):
        fake_copilot.enqueue_chat_stream([
            build_chat_chunk(role="assistant", content=""),
            build_chat_chunk(content="Hel"),
            build_chat_chunk(content="lo"),
            build_chat_chunk(finish_reason="stop", usage={"prompt_tokens": 9, "completion_tokens": 2}),
        ])

        response = gateway_client.post("/v1/messages", json=_messages_request(stream=True))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _parse_events(response.text)
        assert events[0]["event"] == "message_start"
        assert events[0]["data"]["message"]["id"].startswith("msg_")
        text = "".join(
            e["data"]["delta"]["text"] for e in events if e["event"] == "content_block_delta"
        )
        assert text == "Hello"
        assert events[-2]["data"]["delta"]["stop_reason"] == "end_turn"
        assert events[-1]["event"] == "message_stop"
        assert fake_copilot.received[0]["json"]["stream"] is True

    def test_upstream_error_keeps_status(self, gateway_client, fake_copilot):
        fake_copilot.enqueue_error_response(403, "not entitled")

        response = gateway_client.post("/v1/messages", json=_messages_request())

        assert response.status_code == 403
        body = response.json()
        assert body["type"] == "error"
        assert body["error"]["type"] == "api_error"
        assert "not entitled" in body["error"]["message"]

    def test_transport_failure_is_502(self, gateway_state):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = TestClient(create_app(state=gateway_state))
        with mounted_upstream(FAKE_COPILOT_HOST, httpx.MockTransport(refuse)):
            response = client.post("/v1/messages", json=_messages_request())

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "backend_error"

    def test_invalid_json(self, gateway_client):
        response = gateway_client.post(
            "/v1/messages", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_json"

    def test_non_object_body(self, gateway_client):
        response = gateway_client.post("/v1/messages", json=["a"])
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_json_shape"

    def test_missing_model(self, gateway_client):
        response = gateway_client.post("/v1/messages", json={"messages": []})
        assert response.status_code == 400
        assert response.json()["error"]["param"] == "model"

    def test_messages_not_a_list(self, gateway_client, fake_copilot):
        response = gateway_client.post("/v1/messages", json={"model": "claude-sonnet-4", "messages": "hi"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_messages"
        assert fake_copilot.received == []

    @pytest.mark.parametrize("body", [
        {"model": "gpt-4o", "max_tokens": 5},
        {"model": "gpt-4o", "max_tokens": 5, "messages": []},
    ])
    def test_missing_or_empty_messages(self, gateway_client, fake_copilot, body):
        response = gateway_client.post("/v1/messages", json=body)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_messages"
        assert error["param"] == "messages"
        assert fake_copilot.received == []

    def test_count_tokens_does_not_reject_empty_messages(self, gateway_client, fake_copilot):
        response = gateway_client.post(
            "/v1/messages/count_tokens", json={"model": "claude-sonnet-4", "messages": []}
        )
        assert response.status_code == 200
        assert response.json() == {"input_tokens": 115}


class TestCountTokensEndpoint:
    def test_counts_with_multiplier(self, gateway_client, fake_copilot, fake_tokenizer):
        response = gateway_client.post("/v1/messages/count_tokens", json=_messages_request())

        assert response.status_code == 200
        assert response.json() == {"input_tokens": 115}
        assert fake_tokenizer.calls[0][1]["id"] == "claude-sonnet-4"

    def test_models_fetched_once(self, gateway_client, fake_copilot):
        gateway_client.post("/v1/messages/count_tokens", json=_messages_request())
        gateway_client.post("/v1/messages/count_tokens", json=_messages_request())

        model_calls = [r for r in fake_copilot.received if r["path"] == "/models"]
        assert len(model_calls) == 1

    def test_unknown_model_placeholder(self, gateway_client, fake_copilot):
        response = gateway_client.post("/v1/messages/count_tokens", json=_messages_request(model="nope"))
        assert response.json() == {"input_tokens": 1}

    def test_model_list_failure_placeholder(self, gateway_client, fake_copilot):
        fake_copilot.models_status = 500
        response = gateway_client.post("/v1/messages/count_tokens", json=_messages_request())
        assert response.status_code == 200
        assert response.json() == {"input_tokens": 1}

    def test_invalid_body_placeholder(self, gateway_client, fake_copilot):
        response = gateway_client.post(
            "/v1/messages/count_tokens", content=b"garbage", headers={"content-type": "application/json"}
        )
        assert response.status_code == 200
        assert response.json() == {"input_tokens": 1}


class TestResponsesEndpoint:
    def test_non_streaming_passthrough(self, gateway_client, fake_copilot):
        upstream_body = {"id": "resp_1", "object": "response", "model": "gpt-5", "output": [], "status": "completed"}
        fake_copilot.enqueue(UpstreamResponse(json_body=upstream_body))
        payload = {"model": "gpt-5", "input": [{"role": "user", "content": "hi"}]}

        response = gateway_client.post("/v1/responses", json=payload)

        assert response.status_code == 200
        assert response.json() == upstream_body
        assert fake_copilot.received[0]["json"] == payload

    def test_streaming_relays_events_in_order(self, gateway_client, fake_copilot):
        fake_copilot.enqueue(UpstreamResponse(
            stream_events=[
                ("response.created", {"type": "response.created"}),
                ("response.output_text.delta", {"type": "response.output_text.delta", "delta": "Hi"}),
                ("response.completed", {"type": "response.completed"}),
            ],
            add_done=False,
        ))

        response = gateway_client.post(
            "/v1/responses", json={"model": "gpt-5", "input": "hi", "stream": True}
        )

        events = _parse_events(response.text)
        assert [e["event"] for e in events] == [
            "response.created",
            "response.output_text.delta",
            "response.completed",
        ]

    def test_disabled_by_config(self, fake_copilot):
        state = GatewayState(build_test_settings(enable_responses_endpoint=False), tokenizer=FakeTokenizer())
        client = TestClient(create_app(state=state))
        response = client.post("/v1/responses", json={"model": "gpt-5", "input": "hi"})
        assert response.status_code in (404, 405)


class TestModelsEndpoint:
    def test_lists_upstream_models(self, gateway_client, fake_copilot):
        fake_copilot.models = [build_model("claude-sonnet-4"), build_model("gpt-4o", vendor="OpenAI")]

        response = gateway_client.get("/v1/models")

        assert response.status_code == 200
        assert [m["id"] for m in response.json()["data"]] == ["claude-sonnet-4", "gpt-4o"]

    def test_upstream_failure(self, gateway_client, fake_copilot):
        fake_copilot.models_status = 401
        response = gateway_client.get("/v1/models")
        assert response.status_code == 401
        assert response.json()["type"] == "error"


@pytest.mark.asyncio
async def test_state_caches_models(gateway_state, fake_copilot):
    first = await gateway_state.get_models()
    second = await gateway_state.get_models()
    assert first is second
