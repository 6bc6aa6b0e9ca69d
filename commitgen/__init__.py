"""
Commit Message Generator

Hybrid AI commit message generation from staged git changes.
"""

__version__ = "2.0.0"

# Option types the backends are asked to produce, in display order.
# Used by: llm/sorting.py
OPTION_TYPES = {
    'Emoji': 'Concise, starts with an emoji',
    'StandardShort': 'One-line Conventional Commit, no emoji',
    'Conventional': 'Conventional Commit, may include a body',
    'Smart': 'Deep analysis, standard Conventional Commit',
    'Detailed': 'Conventional Commit with a detailed body',
}

OPTION_TYPE_ORDER = list(OPTION_TYPES.keys())
