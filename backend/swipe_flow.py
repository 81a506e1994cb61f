"""
Client-side swipe loop.

    loading -> showing-candidate -> submitting -> match-celebration -> loading ...
                                              +-> loading ...   (swipe dropped or no match)
    loading -> exhausted   (no candidate left)

Gestures are accepted only while a candidate is showing, so at most one swipe
is in flight per machine. What happens after a failed submission is decided
in one place, AdvancePolicy.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

import config
from api_client import ApiClient, ApiError
from identity import Identity
from models import NameRead, SwipeCreate, SwipeDecision, SwipeResult, utcnow

logger = logging.getLogger("name_picker.swipe")

DRAG_OFFSET_THRESHOLD = 100  # px
DRAG_VELOCITY_THRESHOLD = 500  # px/s


class SwipeState(str, Enum):
    loading = "loading"
    showing_candidate = "showing-candidate"
    submitting = "submitting"
    match_celebration = "match-celebration"
    exhausted = "exhausted"


class Direction(str, Enum):
    left = "left"
    right = "right"

    @property
    def action(self) -> SwipeDecision:
        return SwipeDecision.like if self is Direction.right else SwipeDecision.dislike


def direction_for_drag(offset: float, velocity: float = 0.0) -> Optional[Direction]:
    """Turn a released drag into a swipe, or None if the card should snap back."""
    if abs(offset) > DRAG_OFFSET_THRESHOLD:
        return Direction.right if offset > 0 else Direction.left
    if abs(velocity) > DRAG_VELOCITY_THRESHOLD:
        return Direction.right if velocity > 0 else Direction.left
    return None


class Outcome(str, Enum):
    retry = "retry"
    skip = "skip"


class AdvancePolicy:
    """What to do when a swipe submission fails.

    The default never retries: the failed swipe is dropped and the machine
    moves on to the next candidate so the loop cannot get stuck.
    """

    def __init__(self, retries: int = 0) -> None:
        self.retries = retries

    def decide(self, attempt: int, error: ApiError) -> Outcome:
        if attempt <= self.retries:
            logger.warning("Swipe failed (attempt %d), retrying: %s", attempt, error)
            return Outcome.retry
        logger.error("Swipe failed, moving on: %s", error)
        return Outcome.skip


class SwipeMachine:
    def __init__(self, api: ApiClient, identity: Identity, policy: AdvancePolicy = None,
                 advance_delay: float = config.ADVANCE_DELAY,
                 celebration_delay: float = config.CELEBRATION_DELAY,
                 sleep=asyncio.sleep,
                 on_change: Callable[["SwipeMachine"], None] = None) -> None:
        self.api = api
        self.identity = identity
        self.policy = policy or AdvancePolicy()
        self.advance_delay = advance_delay
        self.celebration_delay = celebration_delay
        self._sleep = sleep
        self._on_change = on_change

        self.state = SwipeState.loading
        self.candidate: Optional[NameRead] = None
        self.last_result: Optional[SwipeResult] = None
        self.error: Optional[ApiError] = None
        self.swipe_count = 0
        self.dropped = 0

    def _enter(self, state: SwipeState) -> None:
        self.state = state
        if self._on_change:
            self._on_change(self)

    @property
    def accepts_gestures(self) -> bool:
        return self.state == SwipeState.showing_candidate

    async def start(self) -> None:
        await self._load_next()

    async def _load_next(self) -> None:
        self._enter(SwipeState.loading)
        try:
            name = await self.api.get_next_name(self.identity.user_id)
        except ApiError as exc:
            logger.error("Failed to load next name: %s", exc)
            self.error = exc
            self.candidate = None
            self._enter(SwipeState.exhausted)
            return
        self.error = None
        self.candidate = name
        self._enter(SwipeState.showing_candidate if name else SwipeState.exhausted)

    async def swipe(self, direction: Direction) -> Optional[SwipeResult]:
        """Submit one swipe on the current candidate.

        Returns the service's result, or None when the gesture was ignored or
        the submission was dropped.
        """
        if not self.accepts_gestures:
            logger.debug("Ignoring %s swipe while %s", direction.value, self.state.value)
            return None

        self.swipe_count += 1
        action = SwipeCreate(
            name_id=self.candidate.id,
            user_id=self.identity.user_id,
            action=Direction(direction).action,
            timestamp=utcnow(),
        )
        self._enter(SwipeState.submitting)
        result = await self._submit(action)
        self.last_result = result

        if result is not None and result.is_match:
            self._enter(SwipeState.match_celebration)
            await self._sleep(self.celebration_delay)
        elif result is not None:
            await self._sleep(self.advance_delay)

        await self._load_next()
        return result

    async def _submit(self, action: SwipeCreate) -> Optional[SwipeResult]:
        attempt = 0
        while True:
            try:
                return await self.api.swipe_name(action)
            except ApiError as exc:
                attempt += 1
                if self.policy.decide(attempt, exc) is Outcome.retry:
                    continue
                self.dropped += 1
                return None
