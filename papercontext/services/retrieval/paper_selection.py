"""Relevance triage for papers that are available but not pinned.

Decides which unpinned papers a question is about, from explicit references
(ordinals, citation keys, author names, years, title words) and, failing
those, from whether the question looks paper-grounded at all.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from papercontext.core.models import PaperRef, PlannerPaper

_MATCH_TOKEN = re.compile(r"[a-z0-9]{3,}")
_YEAR = re.compile(r"^\d{4}$")
_PAPER_NUMBER = re.compile(r"\bpaper\s*(\d+)\b")
_ORDINAL_WORDS = {"first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5}

_CONTEXT_FREE = re.compile(
    r"^(hi|hello|hey|thanks|thank you|thx|ok|okay|cool|great|sounds good|got it)[.!?]*$"
)
_PAPER_TERMS = re.compile(
    r"\b(paper|study|article|author|method|methodology|experiment|result|finding|"
    r"conclusion|limitation|evidence|dataset|table|figure|section|citation|"
    r"related work|ablation|baseline)\b"
)
_COMPARISON_TERMS = re.compile(
    r"\b(compare|contrast|difference|similarity|why|how|what about|based on)\b"
)
_REFERRING_TERMS = re.compile(r"\b(this|that|these|those|it|they|them)\b")

ORDINAL_SCORE = 10
CITATION_KEY_SCORE = 8
AUTHOR_SCORE = 4
YEAR_SCORE = 2
MAX_IMPLICIT_PAPERS = 2


@dataclass
class _ScoredPaper:
    entry: PlannerPaper
    score: int
    explicit: bool


def _normalize(value: str | None) -> str:
    return " ".join((value or "").split()).lower()


def _match_tokens(text: str) -> list[str]:
    return _MATCH_TOKEN.findall(text.lower())


def is_context_free_question(question: str) -> bool:
    """True for greetings and acknowledgements that need no paper context."""
    normalized = question.strip().lower()
    return not normalized or bool(_CONTEXT_FREE.match(normalized))


def has_paper_question_signals(question: str) -> bool:
    """True when the question reads as being about papers."""
    normalized = question.lower()
    if not normalized.strip():
        return False
    return bool(
        _PAPER_TERMS.search(normalized)
        or _COMPARISON_TERMS.search(normalized)
        or _REFERRING_TERMS.search(normalized)
    )


def parse_ordinal_targets(question: str) -> set[int]:
    """1-based paper positions referenced as "paper 2" or "second"."""
    normalized = question.lower()
    targets = {int(n) for n in _PAPER_NUMBER.findall(normalized) if int(n) > 0}
    for word, value in _ORDINAL_WORDS.items():
        if re.search(rf"\b{word}\b", normalized):
            targets.add(value)
    return targets


def paper_reference_tokens(paper: PaperRef) -> set[str]:
    """Tokens from title, first author, citation key and a 4-digit year."""
    tokens: set[str] = set()
    for value in (paper.title, paper.first_creator, paper.citation_key):
        tokens.update(_match_tokens(value or ""))
    if paper.year and _YEAR.match(paper.year.strip()):
        tokens.add(paper.year.strip())
    return tokens


def _score_paper(
    entry: PlannerPaper, question_text: str, question_tokens: set[str], ordinals: set[int]
) -> _ScoredPaper:
    paper = entry.paper
    score = 0
    explicit = False

    if entry.order in ordinals:
        score += ORDINAL_SCORE
        explicit = True

    citation = _normalize(paper.citation_key)
    if citation and citation in question_text:
        score += CITATION_KEY_SCORE
        explicit = True

    author = _normalize(paper.first_creator)
    if author and any(token in question_tokens for token in _match_tokens(author)):
        score += AUTHOR_SCORE
        explicit = True

    year = _normalize(paper.year)
    if year and year in question_text:
        score += YEAR_SCORE
        explicit = True

    overlap = len(paper_reference_tokens(paper) & question_tokens)
    score += overlap
    if overlap >= 2:
        explicit = True

    return _ScoredPaper(entry=entry, score=score, explicit=explicit)


def rank_unpinned_papers_by_question(
    papers: Sequence[PlannerPaper], question: str
) -> list[PlannerPaper]:
    """Unpinned papers the question is likely about, most relevant first.

    Explicitly referenced papers are returned by score. Without explicit
    references, a paper-grounded question gets the top two positively
    scored papers, or the first paper when none scores.
    """
    if not papers or is_context_free_question(question):
        return []

    question_text = _normalize(question)
    question_tokens = set(_match_tokens(question_text))
    ordinals = parse_ordinal_targets(question_text)

    scored = [_score_paper(entry, question_text, question_tokens, ordinals) for entry in papers]

    explicit_hits = [s for s in scored if s.explicit and s.score > 0]
    if explicit_hits:
        explicit_hits.sort(key=lambda s: -s.score)
        return [s.entry for s in explicit_hits]

    if not has_paper_question_signals(question_text):
        return []

    scored.sort(key=lambda s: -s.score)
    positive = [s.entry for s in scored if s.score > 0]
    if positive:
        return positive[:MAX_IMPLICIT_PAPERS]
    return list(papers[:1])
