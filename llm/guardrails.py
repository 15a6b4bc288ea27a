"""
Answer Grounding Guardrails for the sales assistant.

Post-LLM checks that keep only lines citing a permitted fragment and
lexically supported by it. Citation presence alone is not accepted.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Set

logger = logging.getLogger(__name__)

CITATION_PATTERN = re.compile(r"\[(chunk:[^\]]+)\]")
CITATION_PREFIX = "chunk:"


@dataclass
class GroundingResult:
    """Result of grounding a candidate answer."""
    text: str = ""
    used_ids: List[str] = field(default_factory=list)
    kept_lines: int = 0
    dropped_lines: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


def citation_key(fragment_id: str) -> str:
    """Fragment ids match markers with or without the `chunk:` prefix."""
    fragment_id = str(fragment_id or "").strip()
    if fragment_id.startswith(CITATION_PREFIX):
        return fragment_id[len(CITATION_PREFIX):]
    return fragment_id


def extract_citations(text: str) -> List[str]:
    return CITATION_PATTERN.findall(str(text or ""))


def strip_citations(text: str) -> str:
    """Remove citation markers, keeping line structure."""
    lines = []
    for line in str(text or "").split("\n"):
        cleaned = re.sub(r"[ \t]{2,}", " ", CITATION_PATTERN.sub("", line)).strip()
        cleaned = re.sub(r"\s+([.,!?])", r"\1", cleaned)
        if cleaned:
            lines.append(cleaned)
    return "\n".join(lines)


def tokenize(text: str) -> List[str]:
    """Lower-case alphanumeric tokens of at least 4 characters."""
    cleaned = re.sub(r"[^a-z0-9\s]", " ", str(text or "").lower())
    return [token for token in cleaned.split() if len(token) >= 4]


class GroundingFilter:
    """
    Filters a generated answer down to verifiably grounded lines.

    A line survives when:
    1. it cites at least one permitted fragment, and
    2. at least one cited fragment shares `min_shared_tokens` tokens with it.

    Lines are kept or dropped whole.
    """

    def __init__(self, min_shared_tokens: int = 2):
        self.min_shared_tokens = min_shared_tokens

    def has_support(self, line: str, fragment_text: str) -> bool:
        line_tokens = set(tokenize(CITATION_PATTERN.sub(" ", line)))
        fragment_tokens = set(tokenize(fragment_text))
        return len(line_tokens & fragment_tokens) >= self.min_shared_tokens

    def filter(self, answer: str, fragments: Sequence[Any]) -> GroundingResult:
        """
        Ground a candidate answer against the permitted fragments.

        Args:
            answer: Generated text with embedded `[chunk:<id>]` markers
            fragments: Objects with `id` and `text` that were given as context

        Returns:
            GroundingResult with kept lines (markers intact) and the ids
            of fragments that actually supported a kept line
        """
        permitted: Dict[str, Any] = {citation_key(f.id): f for f in fragments}
        lines = [line.strip() for line in re.split(r"\n+", str(answer or "")) if line.strip()]

        kept: List[str] = []
        dropped: List[str] = []
        used: List[str] = []
        seen: Set[str] = set()

        for line in lines:
            cites = [c for c in extract_citations(line) if citation_key(c) in permitted]
            if not cites:
                dropped.append(line)
                continue

            supporting = [c for c in cites if self.has_support(line, permitted[citation_key(c)].text)]
            if not supporting:
                dropped.append(line)
                continue

            kept.append(line)
            for cite in supporting:
                if cite not in seen:
                    seen.add(cite)
                    used.append(cite)

        if dropped:
            logger.warning(f"Grounding dropped {len(dropped)} of {len(lines)} lines")

        return GroundingResult(
            text="\n".join(kept),
            used_ids=used,
            kept_lines=len(kept),
            dropped_lines=dropped,
        )
