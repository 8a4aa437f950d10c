"""Hybrid AI: complexity-based routing between local, aggregator and remote LLM backends."""

__version__ = "1.0.0"
