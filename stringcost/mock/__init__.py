"""Deterministic mock LLM used by the coffee workflow."""

from .mock_llm import (
    SynthesisResult,
    ThemeEvaluationResult,
    ThemeGenerationResult,
    TokenUsage,
    estimate_tokens,
    evaluate_theme,
    generate_themes,
    seeded_index,
    synthesize_names,
)

__all__ = [
    "SynthesisResult",
    "ThemeEvaluationResult",
    "ThemeGenerationResult",
    "TokenUsage",
    "estimate_tokens",
    "evaluate_theme",
    "generate_themes",
    "seeded_index",
    "synthesize_names",
]
