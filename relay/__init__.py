"""
LLM Relay — multi-provider request routing with caching and fallback.

Subpackages:
- config: YAML/pydantic configuration and credential resolution
- llm: provider registry, adapters, cache, router and insight helpers
- observability: structured logging setup
"""

__version__ = "0.1.0"
