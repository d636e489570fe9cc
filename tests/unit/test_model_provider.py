"""
Unit tests for the remote prediction model provider.

The prediction endpoint is replaced by an httpx MockTransport.
"""
import json

import httpx
import pytest

from induction_planner.errors import ConfigurationMissing, UpstreamUnavailable
from induction_planner.schemas.fleet import FleetSnapshot
from induction_planner.schemas.requests import SchedulingConstraints
from induction_planner.services.model_provider import RemoteModelSource, parse_model_response

ENDPOINT = "https://model.test/chat/completions"


def completion(payload):
    """Wrap a payload the way a chat completions API returns it."""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return {"choices": [{"message": {"content": content}}]}


def remote_source(handler, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteModelSource(endpoint=ENDPOINT, api_key=api_key, model="test-model", client=client)


@pytest.fixture
def snapshot(make_vehicle):
    return FleetSnapshot(vehicles=[
        make_vehicle(vehicle_id="ts-01", cert_days=(20, 9), job_cards=[("open", 2), ("closed", None)]),
        make_vehicle(vehicle_id="ts-02"),
    ])


@pytest.mark.asyncio
async def test_batched_request_and_parsed_candidates(snapshot, now):
    """Test that one request carries the whole fleet and candidates come back."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=completion({"recommendations": [
            {"trainset_id": "ts-01", "recommended_status": "ready", "confidence_score": 0.92},
            {"trainset_id": "ts-02", "recommended_status": "standby"},
        ]}))

    source = remote_source(handler)
    candidates = await source.generate(
        snapshot, SchedulingConstraints(target_punctuality=99.5), now, {"schedule_date": "2026-10-19"}
    )

    assert len(seen) == 1
    assert seen[0].headers["Authorization"] == "Bearer test-key"
    body = json.loads(seen[0].content)
    assert body["model"] == "test-model"
    user_message = body["messages"][1]["content"]
    assert user_message.startswith("Optimize train scheduling for 2026-10-19")

    model_input = json.loads(user_message.split(": ", 1)[1])
    first = model_input["trainsets"][0]
    assert first["id"] == "ts-01"
    assert first["open_job_cards"] == 1
    assert first["maintenance_priority"] == 2 + 3
    assert first["fitness_expiry_days"] == {"rolling_stock": 20, "signalling": 9}
    assert first["last_cleaning_days"] == 2
    assert model_input["constraints"]["target_punctuality"] == 99.5

    assert [c["trainset_id"] for c in candidates] == ["ts-01", "ts-02"]


@pytest.mark.asyncio
async def test_server_error_is_upstream_unavailable(snapshot, now):
    source = remote_source(lambda request: httpx.Response(503, json={"error": "overloaded"}))
    with pytest.raises(UpstreamUnavailable):
        await source.generate(snapshot, SchedulingConstraints(), now)


@pytest.mark.asyncio
async def test_transport_error_is_upstream_unavailable(snapshot, now):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    source = remote_source(handler)
    with pytest.raises(UpstreamUnavailable):
        await source.generate(snapshot, SchedulingConstraints(), now)


@pytest.mark.asyncio
async def test_non_json_body_is_upstream_unavailable(snapshot, now):
    source = remote_source(lambda request: httpx.Response(200, text="<html>gateway</html>"))
    with pytest.raises(UpstreamUnavailable):
        await source.generate(snapshot, SchedulingConstraints(), now)


@pytest.mark.asyncio
async def test_missing_api_key_is_configuration_missing(snapshot, now):
    source = remote_source(lambda request: httpx.Response(200, json=completion([])), api_key=None)
    with pytest.raises(ConfigurationMissing):
        await source.generate(snapshot, SchedulingConstraints(), now)


def test_parse_accepts_bare_list_and_code_fences():
    fenced = "```json\n[{\"trainset_id\": \"ts-01\"}, \"noise\"]\n```"
    assert parse_model_response(completion(fenced)) == [{"trainset_id": "ts-01"}]


def test_parse_keeps_backticks_inside_string_values():
    """Test that only a fence around the whole content is removed."""
    document = json.dumps({"recommendations": [
        {"trainset_id": "ts-01", "reasoning": ["Driver noted ```brake squeal``` on run 4"]},
    ]})
    candidates = parse_model_response(completion(f"```json\n{document}\n```"))
    assert candidates[0]["reasoning"] == ["Driver noted ```brake squeal``` on run 4"]

    unfenced = parse_model_response(completion(document))
    assert unfenced == candidates


@pytest.mark.parametrize("result", [
    {},
    {"choices": []},
    completion("not json at all"),
    completion({"recommendations": "ts-01 ready"}),
    completion({"answer": []}),
    {"choices": [{"message": {"content": None}}]},
    {"choices": [{"message": {"content": {"recommendations": []}}}]},
    {"choices": [{"message": {"role": "assistant", "tool_calls": []}}]},
])
def test_parse_rejects_malformed_payloads(result):
    with pytest.raises(UpstreamUnavailable):
        parse_model_response(result)
