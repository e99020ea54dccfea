"""External service clients: HTTP page fetching and LLM access."""
