from journal_api.client.suggestions import (
    Effect,
    PromptSuggestionMachine,
    QUOTA_MESSAGE,
    SuggestionState,
    UsageSnapshot,
)

TEXT = "I keep replaying the conversation with my sister and wondering what I missed."
QUESTION = "What do you wish you had said to her?"


def _requesting(machine, text=TEXT, now=100.0):
    machine.content_changed(text)
    return machine.timer_fired(now)


def test_short_text_does_not_start_timer():
    machine = PromptSuggestionMachine()
    transition = machine.content_changed("too short")
    assert transition.effect is Effect.CANCEL_TIMER
    assert machine.state is SuggestionState.IDLE


def test_long_text_starts_timer():
    machine = PromptSuggestionMachine()
    transition = machine.content_changed(TEXT)
    assert transition.effect is Effect.START_TIMER
    assert transition.state is SuggestionState.DEBOUNCING


def test_padding_does_not_count():
    machine = PromptSuggestionMachine()
    transition = machine.content_changed(" " * 60 + "short" + " " * 60)
    assert transition.effect is Effect.CANCEL_TIMER


def test_timer_requests_current_text():
    machine = PromptSuggestionMachine()
    transition = _requesting(machine)
    assert transition.effect is Effect.REQUEST
    assert transition.request_text == TEXT
    assert machine.state is SuggestionState.REQUESTING


def test_success_shows_question_and_updates_usage():
    machine = PromptSuggestionMachine(usage=UsageSnapshot(prompts_used=2, prompts_limit=10))
    _requesting(machine)

    transition = machine.response_ok(TEXT, QUESTION)

    assert transition.state is SuggestionState.SHOWING
    assert transition.prompt == QUESTION
    assert transition.usage.prompts_used == 3
    assert machine.usage.prompts_used == 3


def test_requests_respect_minimum_interval():
    machine = PromptSuggestionMachine()
    _requesting(machine, now=100.0)
    machine.response_ok(TEXT, QUESTION)

    machine.content_changed(TEXT + " More.")
    transition = machine.timer_fired(105.0)

    assert transition.effect is Effect.NONE
    assert machine.state is SuggestionState.SHOWING

    machine.content_changed(TEXT + " More again.")
    assert machine.timer_fired(111.0).effect is Effect.REQUEST


def test_identical_in_flight_request_is_not_repeated():
    machine = PromptSuggestionMachine(min_interval=0)
    _requesting(machine, now=100.0)

    # Type and revert while the first request is still pending
    machine.content_changed(TEXT + "!")
    machine.content_changed(TEXT)
    transition = machine.timer_fired(200.0)

    assert transition.effect is Effect.NONE
    assert machine.state is SuggestionState.REQUESTING


def test_exhausted_quota_blocks_request_until_content_changes():
    machine = PromptSuggestionMachine(usage=UsageSnapshot(prompts_used=10, prompts_limit=10))
    machine.content_changed(TEXT)

    transition = machine.timer_fired(100.0)
    assert transition.effect is Effect.NONE
    assert transition.state is SuggestionState.ERRORED
    assert transition.error == QUOTA_MESSAGE

    # Same text again: suppressed
    assert machine.content_changed(TEXT).effect is Effect.CANCEL_TIMER
    # New text: allowed to try again
    assert machine.content_changed(TEXT + " And then").effect is Effect.START_TIMER


def test_premium_is_never_exhausted():
    usage = UsageSnapshot(subscription_status="premium", prompts_used=500, prompts_limit=None)
    machine = PromptSuggestionMachine(usage=usage)
    assert _requesting(machine).effect is Effect.REQUEST


def test_stale_response_is_discarded():
    machine = PromptSuggestionMachine()
    _requesting(machine)
    machine.content_changed(TEXT + " Later thoughts.")

    transition = machine.response_ok(TEXT, QUESTION)

    assert transition.stale is True
    assert machine.prompt is None
    assert machine.state is SuggestionState.DEBOUNCING
    # Usage still reflects the generation the server counted
    assert machine.usage.prompts_used == 1


def test_quota_error_suppresses_retry_for_same_text():
    machine = PromptSuggestionMachine()
    _requesting(machine)

    transition = machine.response_error(TEXT, "Monthly limit reached", suppress_retry=True)

    assert transition.state is SuggestionState.ERRORED
    assert transition.error == "Monthly limit reached"
    assert machine.content_changed(TEXT).effect is Effect.CANCEL_TIMER
    assert machine.content_changed(TEXT + ".").effect is Effect.START_TIMER
    assert machine.error is None


def test_generic_error_does_not_suppress():
    machine = PromptSuggestionMachine()
    _requesting(machine)
    machine.response_error(TEXT, "Failed to generate prompt")
    assert machine.content_changed(TEXT).effect is Effect.START_TIMER


def test_accept_appends_question():
    machine = PromptSuggestionMachine()
    _requesting(machine, text=TEXT + "   \n")
    machine.response_ok(TEXT + "   \n", QUESTION)

    transition = machine.user_accepted()

    assert transition.content == TEXT + "\n\n" + QUESTION + "\n\n"
    assert transition.state is SuggestionState.DISMISSED
    assert machine.prompt is None
    # The editor echoes the new content back; no new suggestion for it
    assert machine.content_changed(transition.content).effect is Effect.CANCEL_TIMER
    assert machine.state is SuggestionState.DISMISSED


def test_accept_without_prompt_is_noop():
    machine = PromptSuggestionMachine()
    assert machine.user_accepted().content is None


def test_dismiss_applies_to_exact_text_only():
    machine = PromptSuggestionMachine()
    _requesting(machine)
    machine.response_ok(TEXT, QUESTION)

    transition = machine.user_dismissed()
    assert transition.state is SuggestionState.DISMISSED
    assert transition.effect is Effect.CANCEL_TIMER

    assert machine.content_changed(TEXT).effect is Effect.CANCEL_TIMER
    assert machine.content_changed(TEXT + " More").effect is Effect.START_TIMER


def test_dismiss_during_request_discards_response():
    machine = PromptSuggestionMachine()
    _requesting(machine)
    machine.user_dismissed()

    transition = machine.response_ok(TEXT, QUESTION)
    assert transition.stale is True
    assert machine.state is SuggestionState.DISMISSED


def test_visible_suggestion_survives_short_edit():
    machine = PromptSuggestionMachine()
    _requesting(machine)
    machine.response_ok(TEXT, QUESTION)

    transition = machine.content_changed("short")
    assert transition.effect is Effect.CANCEL_TIMER
    assert transition.prompt == QUESTION
    assert machine.state is SuggestionState.SHOWING


def test_usage_snapshot_from_response():
    usage = UsageSnapshot.from_response(
        {"subscription_status": "free", "prompts_used": 4, "prompts_limit": 10, "remaining": 6}
    )
    assert usage.prompts_used == 4
    assert not usage.exhausted
