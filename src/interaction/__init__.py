"""Operator interaction module."""

from .channel import PromptChannel, PromptOutcome, PromptRequest, PromptStatus

__all__ = ["PromptChannel", "PromptOutcome", "PromptRequest", "PromptStatus"]
