"""Framework-agnostic domain models and course calendar rules."""
