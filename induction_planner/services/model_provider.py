"""
Remote prediction model provider for the Induction Planner.

This module handles the single batched call to the external prediction
endpoint (an OpenAI-compatible chat completions API) and turns its answer into
raw candidates.
"""
import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from induction_planner.errors import ConfigurationMissing, UpstreamUnavailable
from induction_planner.schemas.fleet import FleetSnapshot
from induction_planner.schemas.requests import SchedulingConstraints
from induction_planner.services.recommendation_source import (
    Candidate, RecommendationSource, fleet_features
)

SYSTEM_PROMPT = """You are an optimization expert for metro rail train induction planning.

Your task is to recommend which trainsets should be:
1. Ready for service (maximum revenue generation)
2. On standby (backup for service disruptions)
3. In maintenance (preventive/corrective maintenance)
4. Critical status (immediate attention required)

Consider these factors:
- Fitness certificate expiry (safety critical)
- Open job cards (maintenance requirements)
- Mileage balancing (equipment wear distribution)
- Branding priority (advertiser commitments)
- Cleaning schedule (passenger experience)
- Bay position efficiency (minimize shunting)
- Target punctuality from the constraints
- Fleet availability optimization

Respond with a JSON object {"recommendations": [...]}, each recommendation containing:
- trainset_id: string
- recommended_status: "ready" | "standby" | "maintenance" | "critical"
- confidence_score: number (0-1)
- reasoning: string[] (key decision factors)
- priority_score: number (1-10, higher = more critical)
- risk_factors: string[] (potential issues)"""


def build_model_input(
    snapshot: FleetSnapshot,
    constraints: SchedulingConstraints,
    now: datetime,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Assemble the feature document sent to the model."""
    context = context or {}
    schedule_date = context.get("schedule_date")
    return {
        "trainsets": fleet_features(snapshot, now),
        "constraints": constraints.model_dump(),
        "schedule_date": str(schedule_date) if schedule_date else None,
        "historical_kpis": context.get("historical_kpis", []),
    }


CODE_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


def _strip_code_fences(content: str) -> str:
    """Remove one markdown fence wrapping the whole content, if any."""
    content = content.strip()
    match = CODE_FENCE_PATTERN.match(content)
    if match:
        return match.group(1)
    return content


def parse_model_response(result: Any) -> List[Candidate]:
    """
    Extract candidates from a chat completions response body.

    Raises:
        UpstreamUnavailable: If the body does not contain a candidate list
    """
    try:
        content = result["choices"][0]["message"]["content"]
        if not isinstance(content, str):
            raise TypeError(f"message content is {type(content).__name__}, expected text")
        payload = json.loads(_strip_code_fences(content))
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise UpstreamUnavailable(f"Unparsable prediction response: {str(e)}")

    if isinstance(payload, dict):
        payload = payload.get("recommendations")
    if not isinstance(payload, list):
        raise UpstreamUnavailable("Prediction response did not contain a recommendations list")

    return [item for item in payload if isinstance(item, dict)]


class RemoteModelSource(RecommendationSource):
    """Candidates from the external prediction endpoint, one request per run."""

    name = "remote_model"

    def __init__(
        self,
        endpoint: Optional[str],
        api_key: Optional[str],
        model: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client = client

    def check_configuration(self) -> None:
        """Raise ConfigurationMissing if the endpoint cannot be called at all."""
        if not self.api_key:
            raise ConfigurationMissing(
                "No prediction model API key found. Set MODEL_API_KEY or DEEPSEEK_API_KEY, "
                "or disable the model with MODEL_ENABLED=0"
            )
        if not self.endpoint:
            raise ConfigurationMissing("No prediction model endpoint configured (MODEL_ENDPOINT)")

    def build_request(self, model_input: Dict[str, Any]) -> Dict[str, Any]:
        schedule_date = model_input.get("schedule_date")
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Optimize train scheduling for {schedule_date}: {json.dumps(model_input)}",
                },
            ],
            "temperature": 0.2,
            "max_tokens": 4000,
            "response_format": {"type": "json_object"},
        }

    async def _post(self, data: Dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.client is not None:
            return await self.client.post(self.endpoint, headers=headers, json=data, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.endpoint, headers=headers, json=data)

    async def generate(
        self,
        snapshot: FleetSnapshot,
        constraints: SchedulingConstraints,
        now: datetime,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Candidate]:
        self.check_configuration()
        model_input = build_model_input(snapshot, constraints, now, context)

        try:
            response = await self._post(self.build_request(model_input))
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Prediction endpoint error: {str(e)}")
        except ValueError as e:
            raise UpstreamUnavailable(f"Prediction endpoint returned invalid JSON: {str(e)}")

        candidates = parse_model_response(result)
        print(f"{self.name} returned {len(candidates)} candidates for {len(snapshot.vehicles)} trainsets")
        return candidates
