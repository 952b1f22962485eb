"""
Rule-based topic classifier for news items.

A category is only assigned to items that are actually about AI. An AI
mention in the title is a strong signal and one category keyword is enough;
an AI mention only in the summary is weak and needs at least two distinct
category keywords. Items that match nothing get ``None`` so callers can
show them as uncategorized instead of under a misleading label.
"""
from __future__ import annotations

import re
from typing import List, Optional, Pattern, Tuple

TECH_RESEARCH = "Technology & Research"
IMPACT_INDUSTRY = "Impact & Industry"
APPS_TOOLS = "Applications & Tools"
HUMOR = "Simulated Silliness"

CATEGORIES = (TECH_RESEARCH, IMPACT_INDUSTRY, APPS_TOOLS, HUMOR)

_HUMOR_RE = re.compile(
    r"\b(satire|satirical|parody|spoof|fiction(al)?|fake|funny|absurd|silly|jokes?|humou?r|comedy|simulated silliness)\b"
)

_AI_SIGNAL_RE = re.compile(
    r"\b(ai|artificial intelligence|machine learning|deep learning|neural networks?"
    r"|llms?|large language models?|language models?|generative ai|gen ai|chatgpt|chatbots?"
    r"|gpt-?\w*|openai|anthropic|claude|gemini|copilot|deepmind|mistral|llama"
    r"|transformers?|diffusion models?)\b"
)

# Checked in order; the first bucket that qualifies wins
_CATEGORY_RULES: List[Tuple[str, Pattern[str]]] = [
    (
        TECH_RESEARCH,
        re.compile(
            r"\b(research|researchers?|study|studies|paper|university|scientists?|science"
            r"|breakthrough|benchmarks?|algorithms?|training|datasets?|architecture"
            r"|open[- ]source|weights|parameters|robots?|robotics|chips?|gpus?|semiconductors?"
            r"|quantum|compute|reasoning|model release|lab)\b"
        ),
    ),
    (
        IMPACT_INDUSTRY,
        re.compile(
            r"\b(business|markets?|stocks?|shares|invest(?:ment|ors?|ing)?|funding|startups?"
            r"|enterprise|econom(?:y|ic|ics)|acquisitions?|acquires?|mergers?|ipo|valuation"
            r"|billion|million|revenue|profits?|jobs?|workers?|workforce|employment|layoffs?"
            r"|policy|regulation|regulators?|law|legal|lawsuits?|copyright|government|congress"
            r"|senate|eu|ethics|ethical|bias|safety|privacy|society|education|healthcare)\b"
        ),
    ),
    (
        APPS_TOOLS,
        re.compile(
            r"\b(tools?|apps?|applications?|products?|features?|launch(?:es|ed)?|releases?|released"
            r"|updates?|platforms?|plugins?|apis?|assistants?|integrations?|users?|customers?"
            r"|software|browsers?|search|extensions?|workflows?)\b"
        ),
    ),
]


def _distinct_matches(pattern: Pattern[str], text: str) -> int:
    return len({m.group(0) for m in pattern.finditer(text)})


def classify(title: Optional[str], summary: Optional[str]) -> Optional[str]:
    """
    Assign a topic bucket to a news item.

    Args:
        title: Article headline
        summary: Article snippet or description

    Returns:
        One of CATEGORIES, or None when no rule matches
    """
    title_text = (title or "").lower()
    combined = f"{title_text} {(summary or '').lower()}"

    if _HUMOR_RE.search(combined):
        return HUMOR

    strong = bool(_AI_SIGNAL_RE.search(title_text))
    if not strong and not _AI_SIGNAL_RE.search(combined):
        return None

    required = 1 if strong else 2
    for category, pattern in _CATEGORY_RULES:
        if _distinct_matches(pattern, combined) >= required:
            return category
    return None
