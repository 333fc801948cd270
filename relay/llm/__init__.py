"""
LLM routing layer — provider selection, adapters, caching and fallback.

Provides a single entry point for sending prompts to whichever configured
provider (OpenAI, Claude, DeepSeek) is available, with response caching
and a single bounded fallback.

Modules:
- registry: ProviderDescriptor table, availability and priority selection
- adapters: per-provider request bodies and response extraction
- cache: ResponseCache — TTL-based response memoization
- streaming: StreamAccumulator — SSE frame decoding
- router: RequestRouter — cache → select → dispatch → fallback
- insights: report / question / insight prompt templates
- service: LLMService — facade wired from configuration
"""
