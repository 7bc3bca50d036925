from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import requests

from neurolink.rules import Tier

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The server could not be reached or refused the call. Retryable."""


@dataclass(frozen=True, slots=True)
class RoundData:
    target_shape: str
    sat_shape: str
    sat_color_idx: int
    sat_dir_idx: int
    target_color_idx: int
    sat2_shape: str
    sat2_dir_idx: int
    target_solid: bool
    salt: str

    @classmethod
    def from_wire(cls, data: dict) -> "RoundData":
        try:
            return cls(
                target_shape=str(data["targetShape"]),
                sat_shape=str(data["satShape"]),
                sat_color_idx=int(data["satColorIdx"]),
                sat_dir_idx=int(data["satDirIdx"]),
                target_color_idx=int(data["targetColorIdx"]),
                sat2_shape=str(data["sat2Shape"]),
                sat2_dir_idx=int(data["sat2DirIdx"]),
                target_solid=bool(data["targetSolid"]),
                salt=str(data["sessionSalt"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TransportError(f"malformed round data: {exc}") from exc


@dataclass(frozen=True, slots=True)
class Verdict:
    correct: bool
    new_score: int
    new_tier: Tier
    reason: str | None = None

    @classmethod
    def from_wire(cls, data: dict) -> "Verdict":
        try:
            return cls(
                correct=bool(data["correct"]),
                new_score=int(data.get("newScore") or 0),
                new_tier=Tier.parse(data.get("newTier")),
                reason=data.get("reason"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TransportError(f"malformed verdict: {exc}") from exc


class RoundApi(Protocol):
    async def generate_round(self, user_id: str) -> RoundData:
        ...

    async def submit_round(
        self, user_id: str, answer: dict, speed: float, salt: str, mode: str, *, timed_out: bool = False
    ) -> Verdict:
        ...


class HttpRoundApi:
    """RoundApi over the server's JSON endpoints."""

    def __init__(self, base_url: str, *, session: requests.Session | None = None, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def _post(self, path: str, payload: dict) -> dict:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.post(url, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning("POST %s failed: %s", url, exc)
            raise TransportError(str(exc)) from exc
        if response.status_code >= 400:
            logger.warning("POST %s returned %s: %s", url, response.status_code, response.text[:200])
            raise TransportError(f"{path} returned {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{path} returned invalid JSON") from exc

    async def generate_round(self, user_id: str) -> RoundData:
        data = await asyncio.to_thread(self._post, "/api/rounds/generate", {"userId": user_id})
        return RoundData.from_wire(data)

    async def submit_round(
        self, user_id: str, answer: dict, speed: float, salt: str, mode: str, *, timed_out: bool = False
    ) -> Verdict:
        payload = {
            "userId": user_id,
            "answer": answer,
            "speed": speed,
            "manifest": {"salt": salt},
            "mode": mode,
            "timedOut": timed_out,
        }
        data = await asyncio.to_thread(self._post, "/api/rounds/submit", payload)
        return Verdict.from_wire(data)
