"""Card effect resolution: step records, the per-card registry and the resolver."""
