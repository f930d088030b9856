import time
from typing import Any, Callable, Dict, Optional

from . import AUTOSAVE_DELAY_SECONDS, SUGGESTION_DELAY_SECONDS
from .autosave import AutosaveController
from .suggestions import PromptSuggestionController, PromptSuggestionMachine, UsageSnapshot


class EditorSession:
    """
    One open editor: autosave and prompt suggestions fed from the same text.

    Creating an entry switches the session to that entry so later saves
    update it and later prompts are stored against it.
    """

    def __init__(
        self,
        api,
        entry: Optional[Dict[str, Any]] = None,
        on_navigate: Optional[Callable[[str], None]] = None,
        usage: Optional[UsageSnapshot] = None,
        autosave_delay: float = AUTOSAVE_DELAY_SECONDS,
        suggestion_delay: float = SUGGESTION_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api = api
        self._on_navigate = on_navigate

        self.autosave = AutosaveController(api, delay=autosave_delay, on_navigate=self._entry_created)
        self.suggestions = PromptSuggestionController(
            api,
            machine=PromptSuggestionMachine(usage=usage),
            delay=suggestion_delay,
            clock=clock,
        )

        if entry is not None:
            self.autosave.load(entry)
            self.suggestions.entry_id = self.autosave.entry_id
            self.suggestions.machine.text = entry["content"]

    @classmethod
    async def open(cls, api, entry_id: Optional[str] = None, **kwargs) -> "EditorSession":
        """Fetch the entry (when editing) and current usage, then build a session"""
        entry = await api.get_entry(entry_id) if entry_id else None
        usage = UsageSnapshot.from_response(await api.get_usage())
        return cls(api, entry=entry, usage=usage, **kwargs)

    @property
    def content(self) -> str:
        return self.autosave.content

    @property
    def entry_id(self) -> Optional[str]:
        return self.autosave.entry_id

    def _entry_created(self, entry_id: str):
        self.suggestions.entry_id = entry_id
        if self._on_navigate:
            self._on_navigate(entry_id)

    def type(self, content: str):
        self.autosave.content_changed(content)
        self.suggestions.content_changed(content)

    def accept_prompt(self) -> Optional[str]:
        content = self.suggestions.accept()
        if content is not None:
            self.autosave.content_changed(content)
        return content

    def dismiss_prompt(self):
        self.suggestions.dismiss()

    async def save(self):
        await self.autosave.save_now()

    async def close(self):
        """Flush unsaved text and wait for in-flight work"""
        self.suggestions.cancel()
        await self.autosave.save_now()
        await self.suggestions.wait()
        await self.autosave.wait()
