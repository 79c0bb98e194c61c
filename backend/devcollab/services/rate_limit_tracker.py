"""
Rate Limit Tracker

Per-model ledger of provider rate-limit headroom, parsed from the response
headers of every inference call. The ledger is process-local, best-effort
and never persisted: no data for a model means the model is healthy.
"""

import logging
import time
from dataclasses import dataclass, fields
from typing import Callable, Dict, Mapping, Optional

from devcollab.core.config import settings

logger = logging.getLogger(__name__)

# Groq reports requests against the daily window and tokens against the
# per-minute window on the unsuffixed headers.
HEADER_FIELDS = {
    "x-ratelimit-limit-requests": "rpd",
    "x-ratelimit-remaining-requests": "remaining_rpd",
    "x-ratelimit-limit-tokens": "tpm",
    "x-ratelimit-remaining-tokens": "remaining_tpm",
    "x-ratelimit-limit-rpm": "rpm",
    "x-ratelimit-remaining-rpm": "remaining_rpm",
    "x-ratelimit-limit-tpd": "tpd",
    "x-ratelimit-remaining-tpd": "remaining_tpd",
}


@dataclass
class RateLimitState:
    rpm: Optional[int] = None
    rpd: Optional[int] = None
    tpm: Optional[int] = None
    tpd: Optional[int] = None
    remaining_rpm: Optional[int] = None
    remaining_rpd: Optional[int] = None
    remaining_tpm: Optional[int] = None
    remaining_tpd: Optional[int] = None
    last_limited_at: Optional[float] = None

    def headroom(self) -> Dict[str, float]:
        """remaining/limit for every window where both are known"""
        ratios = {}
        for window in ("rpm", "rpd", "tpm", "tpd"):
            limit = getattr(self, window)
            remaining = getattr(self, f"remaining_{window}")
            if limit and remaining is not None:
                ratios[window] = remaining / limit
        return ratios

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["headroom"] = self.headroom()
        return data


def parse_rate_limit_headers(headers: Mapping[str, str]) -> Dict[str, int]:
    """Extract the known rate-limit fields present in `headers`"""
    lowered = {str(key).lower(): value for key, value in headers.items()}
    parsed = {}
    for header, field_name in HEADER_FIELDS.items():
        raw = lowered.get(header)
        if raw is None or raw == "":
            continue
        try:
            parsed[field_name] = int(float(raw))
        except (TypeError, ValueError):
            logger.debug(f"Ignoring unparseable rate limit header {header}={raw!r}")
    return parsed


class RateLimitTracker:
    """In-memory ledger of rate-limit state keyed by model id"""

    def __init__(
        self,
        headroom_threshold: float = None,
        cooldown_seconds: float = None,
        clock: Callable[[], float] = time.time,
    ):
        self.headroom_threshold = (
            settings.RATE_LIMIT_HEADROOM_THRESHOLD if headroom_threshold is None else headroom_threshold
        )
        self.cooldown_seconds = (
            settings.RATE_LIMIT_COOLDOWN_SECONDS if cooldown_seconds is None else cooldown_seconds
        )
        self._clock = clock
        self._state: Dict[str, RateLimitState] = {}

    def get(self, model: str) -> Optional[RateLimitState]:
        return self._state.get(model)

    def record(self, model: str, headers: Mapping[str, str]) -> RateLimitState:
        """Merge newly observed headers; absent fields keep their previous value"""
        state = self._state.setdefault(model, RateLimitState())
        for field_name, value in parse_rate_limit_headers(headers).items():
            setattr(state, field_name, value)
        return state

    def mark_limited(self, model: str):
        state = self._state.setdefault(model, RateLimitState())
        state.last_limited_at = self._clock()
        logger.warning(f"Model {model} was rate limited; avoiding it for {self.cooldown_seconds:.0f}s")

    def should_switch(self, model: str) -> bool:
        """True when the model is near a limit or was limited recently"""
        state = self._state.get(model)
        if state is None:
            return False

        for window, ratio in state.headroom().items():
            if ratio < self.headroom_threshold:
                logger.debug(f"Model {model} has {ratio:.1%} {window} headroom left")
                return True

        if state.last_limited_at is not None:
            return self._clock() - state.last_limited_at < self.cooldown_seconds

        return False

    def snapshot(self) -> Dict[str, dict]:
        return {model: state.to_dict() for model, state in self._state.items()}

    def reset(self):
        self._state.clear()
