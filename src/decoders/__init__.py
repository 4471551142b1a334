"""Deterministic data decoders — RFC validation and classification."""

from src.decoders.rfc import classify, generate_example, normalize, validate

__all__ = ["classify", "generate_example", "normalize", "validate"]
