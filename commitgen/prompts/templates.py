"""System prompts for each backend role.

Both roles receive the same user message (the assembled diff payload) and
must answer with a JSON array of {type, description, message} objects.
"""

ROLE_FAST = 'fast'
ROLE_DEEP = 'deep'

_INPUT_NOTES = """Note: The input may be a "Smart Diff" or "Summary Mode":
- "[DELETED] file" means that file was deleted.
- "[BINARY/ASSET] file" is a binary or asset change; its content is not shown.
- "[MINIFIED/GENERATED] file" is a generated artifact; its content is not shown.
- "File Changed: file (dependency lockfile update)" is a lockfile update.
- "... (N lines skipped) ..." marks lines omitted from a long file.
- "Git Diff Stat (Summary Mode)" means only file names and line counts are available; infer the message from those."""

FAST_PROMPT = """You are a developer assistant. Analyze the git diff and generate 3 commit messages:
1. "Emoji": Concise, starts with an emoji (e.g. ✨), max 50 chars.
2. "StandardShort": Strictly one line, Conventional Commits format (feat(scope): subject), NO emoji.
3. "Conventional": Conventional Commits format (feat(scope): subject). **Can be multi-line** if explanation is needed.

All messages must be written in {language}.

{notes}

Return strictly a JSON array, nothing else:
[
  {{"type":"Emoji","description":"Emoji style (short)","message":"✨ ..."}},
  {{"type":"StandardShort","description":"Minimal standard","message":"feat(scope): ..."}},
  {{"type":"Conventional","description":"Conventional (standard)","message":"feat(scope): ...\\n\\nBody..."}}
]"""

DEEP_PROMPT = """You are an expert developer. Analyze the git diff deeply to understand the true intent and impact of the changes.
Generate 1 "Smart" commit message.
Although you should think deeply, the output MUST be a standard, concise Conventional Commit.
Avoid verbosity. Avoid messy formatting.
Format: <type>(<scope>): <subject>

Write the message in {language}.

{notes}

Return strictly a JSON array containing ONE object:
[{{"type":"Smart","description":"Deep analysis (standard)","message":"feat: ..."}}]"""

SYSTEM_PROMPTS = {
    ROLE_FAST: FAST_PROMPT,
    ROLE_DEEP: DEEP_PROMPT,
}


def build_system_prompt(role: str, language: str = "English") -> str:
    """Instructions for one backend role."""
    try:
        template = SYSTEM_PROMPTS[role]
    except KeyError:
        raise ValueError(f"Unknown backend role: {role}. Use '{ROLE_FAST}' or '{ROLE_DEEP}'.")
    return template.format(language=language, notes=_INPUT_NOTES)
