"""
Synonym Tables and Term Matcher

Category and tag vocabularies are ordered data ({canonical, variants}) read
by one small generic matcher. Adding a synonym never touches control flow.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class SynonymGroup:
    """A canonical term and every surface form that means the same thing"""
    canonical: str
    variants: Tuple[str, ...]

    def contains(self, term: str) -> bool:
        term = term.lower()
        return term == self.canonical or term in self.variants


CATEGORY_SYNONYMS: Tuple[SynonymGroup, ...] = (
    SynonymGroup("meeting", ("meeting", "meetings", "event", "events", "call", "calls")),
    SynonymGroup("task", ("task", "tasks", "todo", "todos", "to-do", "to-dos")),
    SynonymGroup("email", ("email", "emails", "message", "messages")),
    SynonymGroup("note", ("note", "notes", "memo", "memos")),
    SynonymGroup("idea", ("idea", "ideas", "thought", "thoughts")),
    SynonymGroup("project", ("project", "projects")),
    SynonymGroup("work", ("work", "job")),
    SynonymGroup("personal", ("personal", "private")),
)

TAG_SYNONYMS: Tuple[SynonymGroup, ...] = (
    SynonymGroup("important", ("important", "priority", "urgent", "critical")),
    SynonymGroup("followup", ("followup", "follow-up", "follow up", "check back")),
    SynonymGroup("deadline", ("deadline", "due", "expires")),
)


def variants_for(term: str, groups: Iterable[SynonymGroup]) -> List[str]:
    """
    All synonym variants of a term, in table order.

    Lookup is bidirectional: a live tag named "urgent" picks up every
    variant of the "important" group, not just groups keyed by "urgent".
    """
    variants: List[str] = []
    for group in groups:
        if group.contains(term):
            for variant in group.variants:
                if variant not in variants:
                    variants.append(variant)
    return variants


@lru_cache(maxsize=1024)
def _term_regex(term: str) -> "re.Pattern[str]":
    # Anchored at a word start; consumes the rest of the word so "task"
    # claims "tasks" and "meeting" claims "meetings".
    body = r"\s+".join(re.escape(part) for part in term.split())
    return re.compile(r"(?<!\w)" + body + r"\w*", re.IGNORECASE)


def find_term(text: str, term: str) -> Optional[str]:
    """Return the word in text that the term matches, or None."""
    if not term or not term.strip():
        return None
    match = _term_regex(term.strip()).search(text)
    return match.group(0) if match else None


def strip_term(text: str, term: str) -> str:
    """Remove every word the term matches."""
    return _term_regex(term.strip()).sub(" ", text)


def match_with_synonyms(
    text: str,
    name: str,
    groups: Iterable[SynonymGroup],
) -> Optional[str]:
    """
    Test a catalog name against text: the name itself first, then its
    synonym variants in table order.

    Returns:
        The term (name or variant) that matched, or None
    """
    if find_term(text, name):
        return name
    for variant in variants_for(name, groups):
        if find_term(text, variant):
            return variant
    return None


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()
