"""ConditionForge: a condition DSL that compiles to JSON-Logic."""

__version__ = "0.1.0"
