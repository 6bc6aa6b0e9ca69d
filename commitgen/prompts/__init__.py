"""Prompt Construction Package"""

from commitgen.prompts.builder import AssembledPrompt, PromptAssembler
from commitgen.prompts.project import ProjectInfo, load_project_info
from commitgen.prompts.templates import ROLE_DEEP, ROLE_FAST, build_system_prompt

__all__ = [
    "AssembledPrompt",
    "PromptAssembler",
    "ProjectInfo",
    "load_project_info",
    "ROLE_DEEP",
    "ROLE_FAST",
    "build_system_prompt",
]
