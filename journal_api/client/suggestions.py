# journal_api/client/suggestions.py
"""
Debounced reflective-prompt suggestions.

PromptSuggestionMachine holds the policy and performs no I/O: each event
returns a Transition naming the side effect the driver must perform.
PromptSuggestionController is that driver, wiring the machine to a
Debouncer and the API client.

    IDLE --content ok--> DEBOUNCING --timer--> REQUESTING --ok--> SHOWING
      ^                      |                     |                |
      |                  too short             error          accept/dismiss
      +----------------------+                     v                v
                                                ERRORED         DISMISSED
"""

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx

from . import MIN_REQUEST_INTERVAL_SECONDS, MIN_SUGGESTION_LENGTH, SUGGESTION_DELAY_SECONDS
from .api import APIError
from .debounce import Debouncer
from ..logging_config import get_logger

logger = get_logger(__name__)

QUOTA_MESSAGE = "You've reached your monthly limit. Upgrade to Premium for unlimited prompts."
GENERIC_ERROR_MESSAGE = "Failed to generate prompt"


class SuggestionState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    REQUESTING = "requesting"
    SHOWING = "showing"
    DISMISSED = "dismissed"
    ERRORED = "errored"


class Effect(str, Enum):
    NONE = "none"
    START_TIMER = "start_timer"
    CANCEL_TIMER = "cancel_timer"
    REQUEST = "request"


@dataclass(frozen=True)
class UsageSnapshot:
    subscription_status: str = "free"
    prompts_used: int = 0
    prompts_limit: Optional[int] = 10

    @property
    def is_premium(self) -> bool:
        return self.subscription_status == "premium"

    @property
    def exhausted(self) -> bool:
        if self.is_premium or self.prompts_limit is None:
            return False
        return self.prompts_used >= self.prompts_limit

    def after_generation(self) -> "UsageSnapshot":
        return replace(self, prompts_used=self.prompts_used + 1)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "UsageSnapshot":
        return cls(
            subscription_status=data.get("subscription_status", "free"),
            prompts_used=data.get("prompts_used", 0),
            prompts_limit=data.get("prompts_limit"),
        )


@dataclass(frozen=True)
class Transition:
    state: SuggestionState
    effect: Effect = Effect.NONE
    request_text: Optional[str] = None
    prompt: Optional[str] = None
    error: Optional[str] = None
    usage: Optional[UsageSnapshot] = None
    content: Optional[str] = None  # new editor text after an accept
    stale: bool = False


class PromptSuggestionMachine:

    def __init__(
        self,
        usage: Optional[UsageSnapshot] = None,
        min_length: int = MIN_SUGGESTION_LENGTH,
        min_interval: float = MIN_REQUEST_INTERVAL_SECONDS,
    ):
        self.min_length = min_length
        self.min_interval = min_interval
        self.usage = usage or UsageSnapshot()

        self.state = SuggestionState.IDLE
        self.text = ""
        self.prompt: Optional[str] = None
        self.error: Optional[str] = None

        self._dismissed_text: Optional[str] = None
        self._suppressed_text: Optional[str] = None
        self._in_flight_text: Optional[str] = None
        self._last_request_at: Optional[float] = None

    def _transition(self, effect: Effect = Effect.NONE, **kwargs) -> Transition:
        return Transition(
            state=self.state,
            effect=effect,
            prompt=self.prompt,
            error=self.error,
            **kwargs
        )

    def _resting_state(self) -> SuggestionState:
        if self.text == self._dismissed_text:
            return SuggestionState.DISMISSED
        return SuggestionState.SHOWING if self.prompt else SuggestionState.IDLE

    def _eligible(self, text: str) -> bool:
        return (
            len(text.strip()) >= self.min_length
            and text != self._dismissed_text
            and text != self._suppressed_text
        )

    # Events

    def content_changed(self, text: str) -> Transition:
        self.text = text

        if not self._eligible(text):
            if self.state is SuggestionState.DEBOUNCING:
                self.state = self._resting_state()
            return self._transition(Effect.CANCEL_TIMER)

        # Content changed, so any earlier error no longer applies
        self.error = None
        self._suppressed_text = None
        self.state = SuggestionState.DEBOUNCING
        return self._transition(Effect.START_TIMER)

    def timer_fired(self, now: float) -> Transition:
        if self.state is not SuggestionState.DEBOUNCING:
            return self._transition()

        if self._in_flight_text == self.text:
            self.state = SuggestionState.REQUESTING
            return self._transition()

        if self._last_request_at is not None and now - self._last_request_at < self.min_interval:
            self.state = self._resting_state()
            return self._transition()

        if self.usage.exhausted:
            self.state = SuggestionState.ERRORED
            self.error = QUOTA_MESSAGE
            self._suppressed_text = self.text
            return self._transition()

        self.state = SuggestionState.REQUESTING
        self._in_flight_text = self.text
        self._last_request_at = now
        return self._transition(Effect.REQUEST, request_text=self.text)

    def response_ok(self, text: str, prompt: str, usage: Optional[UsageSnapshot] = None) -> Transition:
        if self._in_flight_text == text:
            self._in_flight_text = None

        # The server counted the generation whether or not we still want it
        self.usage = usage or self.usage.after_generation()

        if text != self.text or text == self._dismissed_text:
            if self.state is SuggestionState.REQUESTING:
                self.state = self._resting_state()
            return self._transition(usage=self.usage, stale=True)

        self.prompt = prompt
        self.error = None
        self.state = SuggestionState.SHOWING
        return self._transition(usage=self.usage)

    def response_error(self, text: str, message: str, suppress_retry: bool = False) -> Transition:
        if self._in_flight_text == text:
            self._in_flight_text = None

        if text != self.text:
            if self.state is SuggestionState.REQUESTING:
                self.state = self._resting_state()
            return self._transition(stale=True)

        self.prompt = None
        self.error = message
        self.state = SuggestionState.ERRORED
        if suppress_retry:
            self._suppressed_text = text
        return self._transition()

    def user_accepted(self) -> Transition:
        if not self.prompt:
            return self._transition()

        content = self.text.strip() + "\n\n" + self.prompt + "\n\n"
        self.text = content
        self._dismissed_text = content
        self.prompt = None
        self.state = SuggestionState.DISMISSED
        return self._transition(Effect.CANCEL_TIMER, content=content)

    def user_dismissed(self) -> Transition:
        self._dismissed_text = self.text
        self.prompt = None
        self.error = None
        self.state = SuggestionState.DISMISSED
        return self._transition(Effect.CANCEL_TIMER)


class PromptSuggestionController:
    """Drives a PromptSuggestionMachine with real timers and API calls"""

    def __init__(
        self,
        api,
        machine: Optional[PromptSuggestionMachine] = None,
        delay: float = SUGGESTION_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        entry_id: Optional[str] = None,
        on_transition: Optional[Callable[[Transition], None]] = None,
    ):
        self.api = api
        self.machine = machine or PromptSuggestionMachine()
        self.clock = clock
        self.entry_id = entry_id
        self.on_transition = on_transition
        self._debouncer = Debouncer(delay, self._timer_fired)

    @property
    def state(self) -> SuggestionState:
        return self.machine.state

    @property
    def prompt(self) -> Optional[str]:
        return self.machine.prompt

    @property
    def error(self) -> Optional[str]:
        return self.machine.error

    @property
    def usage(self) -> UsageSnapshot:
        return self.machine.usage

    def _apply(self, transition: Transition) -> Transition:
        if transition.effect is Effect.START_TIMER:
            self._debouncer.trigger()
        elif transition.effect is Effect.CANCEL_TIMER:
            self._debouncer.cancel()
        if self.on_transition:
            self.on_transition(transition)
        return transition

    def content_changed(self, text: str) -> Transition:
        return self._apply(self.machine.content_changed(text))

    def accept(self) -> Optional[str]:
        """Accept the visible question; returns the new editor content"""
        return self._apply(self.machine.user_accepted()).content

    def dismiss(self) -> Transition:
        return self._apply(self.machine.user_dismissed())

    async def refresh_usage(self):
        data = await self.api.get_usage()
        self.machine.usage = UsageSnapshot.from_response(data)

    async def _timer_fired(self):
        transition = self._apply(self.machine.timer_fired(self.clock()))
        if transition.effect is Effect.REQUEST:
            await self._request(transition.request_text)

    async def _request(self, text: str):
        try:
            data = await self.api.generate_prompt(text, entry_id=self.entry_id)
        except APIError as e:
            logger.info(
                f"Prompt request failed: {e.message}",
                extra={"extra_data": {"status_code": e.status_code, "code": e.code}}
            )
            self._apply(self.machine.response_error(text, e.message, e.suppresses_retry))
            return
        except httpx.HTTPError as e:
            logger.warning(f"Prompt request failed: {e}")
            self._apply(self.machine.response_error(text, GENERIC_ERROR_MESSAGE))
            return

        self._apply(self.machine.response_ok(text, data["prompt_text"]))

    def cancel(self):
        self._debouncer.cancel()

    async def wait(self):
        await self._debouncer.wait()
