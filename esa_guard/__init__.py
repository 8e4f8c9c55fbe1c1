"""esa-llm-scoped-guard - scoped writes of structured task documents to esa.io."""

__version__ = "0.3.0"
