"""Display order for merged commit options."""

from typing import Iterable, Sequence

from commitgen import OPTION_TYPE_ORDER
from commitgen.llm.base import CommitOption


def sort_options(options: Iterable[CommitOption],
                 priority: Sequence[str] = OPTION_TYPE_ORDER) -> list[CommitOption]:
    """Order by type priority (case-insensitive). Unknown types go last; ties keep input order."""
    ranks = {name.casefold(): rank for rank, name in enumerate(priority)}
    unknown = len(ranks)
    return sorted(options, key=lambda option: ranks.get(option.type.casefold(), unknown))
