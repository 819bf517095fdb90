"""
Companion Memory Core

Per-persona conversational memory for a multi-tenant companion chat:
ordered history, persona seeding, semantic recall, repetition detection
and streamed, durably recorded replies.
"""

__version__ = "1.0.0"
