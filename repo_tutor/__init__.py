"""
Repo Tutor
Turns a public GitHub repository into a guided learning plan.
"""

from repo_tutor.config import Settings, get_settings, settings

__all__ = ["settings", "get_settings", "Settings"]
