"""Prompt rendering for the risk analyzer.

Provides ``PromptManager``, a Jinja2-based template engine that renders
stored session responses into the completion API's system and user
messages.
"""

from devscreen_rules.prompt.manager import PromptManager, achievement_status

__all__ = ["PromptManager", "achievement_status"]
