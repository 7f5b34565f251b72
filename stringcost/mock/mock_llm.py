"""Deterministic stand-in for an LLM used by the reference workflow.

Outputs are seeded from the prompt text so the same prompt always yields
the same themes, scores and names, with rough token estimates attached.
"""

import math
from typing import List

from pydantic import BaseModel, Field

ADJECTIVES = [
    "Velvet",
    "Solar",
    "Aurora",
    "Harbor",
    "Cinder",
    "Verdant",
    "Nimbus",
    "Juniper",
    "Golden",
    "Rustic",
]

NOUNS = [
    "Blend",
    "Roastery",
    "Collective",
    "Parlor",
    "Lab",
    "Atelier",
    "Vault",
    "Folio",
    "House",
    "Haven",
]

NAME_SUFFIXES = ["Cafe", "Roasters", "Bar", "Works"]


class TokenUsage(BaseModel):
    """Token estimate for one mock call."""

    prompt_tokens: int = Field(..., description="Estimated prompt tokens")
    completion_tokens: int = Field(..., description="Estimated completion tokens")


class ThemeGenerationResult(TokenUsage):
    themes: List[str] = Field(default_factory=list)


class ThemeEvaluationResult(TokenUsage):
    theme: str
    score: float
    rationale: str


class SynthesisResult(TokenUsage):
    candidates: List[str] = Field(default_factory=list)


def estimate_tokens(text: str) -> int:
    """Estimate tokens as 1.2 per whitespace-separated word, at least 1."""
    if not text or not text.strip():
        return 1
    return max(1, math.ceil(len(text.split()) * 1.2))


def seeded_index(seed: str, index: int, modulo: int) -> int:
    """Hash seed with a 31-multiplier (32-bit wrap) and reduce modulo."""
    value = 0
    for char in seed:
        value = (value * 31 + ord(char) + index) & 0xFFFFFFFF
    return value % modulo


def generate_themes(prompt: str, branches: int) -> ThemeGenerationResult:
    """Generate `branches` two-word naming themes for a prompt."""
    themes = []
    for i in range(branches):
        adjective = ADJECTIVES[seeded_index(prompt, i, len(ADJECTIVES))]
        noun = NOUNS[seeded_index(prompt, i + 7, len(NOUNS))]
        themes.append(f"{adjective} {noun}")

    return ThemeGenerationResult(
        themes=themes,
        prompt_tokens=estimate_tokens(prompt),
        completion_tokens=sum(estimate_tokens(theme) for theme in themes),
    )


def evaluate_theme(theme: str) -> ThemeEvaluationResult:
    """Score a theme between 0.6 and 1.0."""
    base_score = 0.6 + (seeded_index(theme, len(theme), 100) / 100) * 0.4
    rationale = (
        f'Theme "{theme}" blends sensory imagery with a welcoming mood '
        "suitable for specialty coffee."
    )
    return ThemeEvaluationResult(
        theme=theme,
        score=round(base_score, 2),
        rationale=rationale,
        prompt_tokens=estimate_tokens(f"Evaluate the theme {theme}"),
        completion_tokens=estimate_tokens(rationale),
    )


def synthesize_names(
    prompt: str, themes: List[str], finalists: int
) -> SynthesisResult:
    """Turn the top themes into `finalists` candidate names."""
    if not themes:
        raise ValueError("At least one theme is required to synthesize names")

    candidates = [
        f"{themes[i % len(themes)]} {NAME_SUFFIXES[i % len(NAME_SUFFIXES)]}"
        for i in range(finalists)
    ]
    return SynthesisResult(
        candidates=candidates,
        prompt_tokens=estimate_tokens(f"{prompt}{' '.join(themes)}"),
        completion_tokens=sum(estimate_tokens(name) for name in candidates),
    )
