"""
PriceBot LLM - Query understanding over two interchangeable providers.

- context: SessionContext, ProviderName and conversation types
- query: Query variants and tool input models
- orchestrator: provider selection, fallback and conversation continuity
- providers: Claude and Groq implementations
- cost_hooks: fire-and-forget cost logging
"""
