# journal_api/client/autosave.py
"""
Debounced autosave for the journal editor.

Every keystroke restarts a single idle timer; when it expires the current
text is created or updated on the server. Saves are serialized so a create
that is still in flight is followed by an update, never a second create.
"""

import asyncio
from typing import Any, Callable, Dict, Optional

import httpx

from . import AUTOSAVE_DELAY_SECONDS
from .api import APIError
from .debounce import Debouncer
from ..logging_config import get_logger

logger = get_logger(__name__)


class AutosaveController:

    def __init__(
        self,
        api,
        delay: float = AUTOSAVE_DELAY_SECONDS,
        entry_id: Optional[str] = None,
        on_navigate: Optional[Callable[[str], None]] = None,
    ):
        self.api = api
        self.entry_id = entry_id
        self.on_navigate = on_navigate

        self.content = ""
        self.saved_content: Optional[str] = None
        self.last_error: Optional[str] = None
        self.saving = False

        self._debouncer = Debouncer(delay, self._save)
        self._lock = asyncio.Lock()

    @property
    def dirty(self) -> bool:
        return self.content != self.saved_content

    def load(self, entry: Dict[str, Any]):
        """Seed from an existing entry; its content counts as persisted"""
        self.entry_id = str(entry["id"])
        self.content = entry["content"]
        self.saved_content = entry["content"]

    def content_changed(self, content: str):
        self.content = content
        self._debouncer.trigger()

    async def save_now(self):
        self._debouncer.cancel()
        await self._save()

    async def _save(self):
        async with self._lock:
            content = self.content
            if not content.strip() or content == self.saved_content:
                return

            self.saving = True
            try:
                if self.entry_id:
                    await self.api.update_entry(self.entry_id, content)
                else:
                    entry = await self.api.create_entry(content)
                    self.entry_id = str(entry["id"])
                    logger.debug(f"Created entry {self.entry_id}")
                    if self.on_navigate:
                        self.on_navigate(self.entry_id)
            except (APIError, httpx.HTTPError) as e:
                # Next keystroke restarts the cycle
                self.last_error = getattr(e, "message", None) or str(e) or "Failed to save entry"
                logger.warning(f"Autosave failed: {self.last_error}")
                return
            finally:
                self.saving = False

            self.saved_content = content
            self.last_error = None

    def cancel(self):
        self._debouncer.cancel()

    async def wait(self):
        await self._debouncer.wait()
