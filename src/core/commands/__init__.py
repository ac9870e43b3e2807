"""Command module for the command catalog, parsing and parameter extraction.

This module provides:
- CommandMapping / BotPersona: Data models for catalog entries and bot personas
- ParsedCommand / parse_slash_command: Explicit ``/command key=value`` parsing
- extract_params / merge_params / render_template: Deterministic extraction
- build_classification_prompt: Prompt for natural-language classification
"""

from src.core.commands.extractor import (
    extract_params,
    merge_params,
    missing_required,
    render_template,
)
from src.core.commands.models import BotPersona, CommandMapping
from src.core.commands.parser import ParsedCommand, parse_slash_command
from src.core.commands.prompts import build_classification_prompt

__all__ = [
    "BotPersona",
    "CommandMapping",
    "ParsedCommand",
    "parse_slash_command",
    "extract_params",
    "merge_params",
    "missing_required",
    "render_template",
    "build_classification_prompt",
]
