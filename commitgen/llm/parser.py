"""Response Parser - Extract commit options from free-form model text.

Models are asked for a JSON array but routinely wrap it in Markdown fences,
add prose around it, leave trailing commas, or stop mid-object. The primary
path tolerates the first three; the salvage path recovers every individually
well-formed object when the whole payload does not parse or yields no
valid option. Parsing never raises: problems are logged as parse failures
and yield fewer options.
"""

import json
import logging
import re
from typing import Any

from commitgen.llm.base import CommitOption

logger = logging.getLogger(__name__)

_FENCE = re.compile(r'```[A-Za-z0-9_-]*')
_TRAILING_COMMA = re.compile(r',(\s*[}\]])')
# One {...} object with no nested braces outside of string literals
_OBJECT_FRAGMENT = re.compile(r'\{(?:[^{}"]|"(?:\\.|[^"\\])*")*\}')


def strip_code_fences(text: str) -> str:
    return _FENCE.sub('', text).strip()


def strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r'\1', text)


def extract_json(text: str) -> str:
    """Outermost span of whichever container, [...] or {...}, opens first."""
    spans = []
    for open_, close in (('[', ']'), ('{', '}')):
        start, end = text.find(open_), text.rfind(close)
        if start != -1 and end > start:
            spans.append((start, end))
    if not spans:
        raise ValueError("no JSON array or object found")
    start, end = min(spans)
    return text[start:end + 1]


def to_option(item: Any) -> CommitOption | None:
    """Validate one parsed element; None when it lacks type or message."""
    if not isinstance(item, dict):
        return None
    option_type = item.get('type')
    message = item.get('message')
    if not isinstance(option_type, str) or not option_type.strip():
        return None
    if not isinstance(message, str) or not message.strip():
        return None
    description = item.get('description')
    if not isinstance(description, str):
        description = ""
    return CommitOption(type=option_type.strip(), description=description.strip(), message=message.strip())


class ResponseParser:
    """Turns one backend's raw text into validated CommitOptions."""

    def parse(self, content: str, source: str = "backend") -> list[CommitOption]:
        if not content or not content.strip():
            logger.warning("Parse failure from %s: empty response", source)
            return []

        cleaned = strip_trailing_commas(strip_code_fences(content))
        try:
            items = self._parse_items(cleaned)
            options = [option for option in map(to_option, items) if option]
            if not options:
                raise ValueError(f"no valid options in {len(items)} elements")
        except ValueError as e:
            options = self._salvage(cleaned)
            if options:
                logger.warning("Parse failure from %s (%s); salvaged %d options", source, e, len(options))
            else:
                logger.warning("Parse failure from %s (%s); nothing salvaged: %.200r", source, e, content)
            return options

        dropped = len(items) - len(options)
        if dropped:
            logger.info("Dropped %d invalid options from %s", dropped, source)
        return options

    def _parse_items(self, text: str) -> list:
        payload = json.loads(extract_json(text))
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            return [payload]
        raise ValueError(f"expected a JSON array, got {type(payload).__name__}")

    def _salvage(self, text: str) -> list[CommitOption]:
        options = []
        for match in _OBJECT_FRAGMENT.finditer(text):
            try:
                item = json.loads(strip_trailing_commas(match.group(0)))
            except ValueError:
                continue
            option = to_option(item)
            if option:
                options.append(option)
        return options
