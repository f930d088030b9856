"""
Editor-side policies: debounced autosave and debounced reflective-prompt
suggestions, driven on one asyncio event loop.
"""

AUTOSAVE_DELAY_SECONDS = 2.0
SUGGESTION_DELAY_SECONDS = 2.0
MIN_REQUEST_INTERVAL_SECONDS = 10.0
MIN_SUGGESTION_LENGTH = 50
