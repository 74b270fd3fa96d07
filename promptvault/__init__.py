"""
PromptVault gateway: the AI-provider integration core of a prompt manager.

This package contains:
- vault: encryption of stored provider API keys
- query: chainable client for the generic CRUD backend, plus SQL filter helpers
- provider: model catalogue fetchers, registry and task recommendations
- proxy: authenticated pass-through to upstream provider APIs
- services: API key management and access tokens
- routes: FastAPI app factory
"""
