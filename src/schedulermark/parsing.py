"""Parsing utilities for judge model outputs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

LINE_SPLIT_RE = re.compile(r"\r?\n")

EMPTY_RESPONSE = "Empty response"


class Verdict(str, Enum):
    """Structured outcome of one judgement; values are the persisted tokens."""

    AFFIRMATIVE = "YES"
    NEGATIVE = "NO"
    ERROR = "ERROR"


@dataclass(frozen=True)
class LineClassification:
    head: str | None
    rest: tuple[str, ...]


@dataclass(frozen=True)
class VerdictParse:
    verdict: Verdict
    explanation: str


def classify_lines(text: str) -> LineClassification:
    """Split into trimmed lines and separate the first non-empty line from the rest."""

    lines = [line.strip() for line in LINE_SPLIT_RE.split(text)]
    for idx, line in enumerate(lines):
        if line:
            return LineClassification(head=line, rest=tuple(lines[idx + 1 :]))
    return LineClassification(head=None, rest=())


def verdict_from_head(head: str) -> Verdict:
    """Exact-match dispatch on the verdict line.

    Anything other than ``YES`` is NEGATIVE, so a malformed or truncated verdict
    line can never be read as an affirmative.
    """

    token = head.upper()
    if token == "YES":
        return Verdict.AFFIRMATIVE
    # Explicit NO branch; it shares the fail-safe default below.
    if token == "NO":
        return Verdict.NEGATIVE
    return Verdict.NEGATIVE


def parse_verdict(raw: str) -> VerdictParse:
    """Extract the YES/NO verdict and the explanation that follows it."""

    classified = classify_lines(raw)
    if classified.head is None:
        return VerdictParse(verdict=Verdict.ERROR, explanation=EMPTY_RESPONSE)

    return VerdictParse(
        verdict=verdict_from_head(classified.head),
        explanation="\n".join(classified.rest).strip(),
    )
