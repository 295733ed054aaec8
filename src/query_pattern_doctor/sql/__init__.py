"""SQL text handling: canonicalization, structural extraction and caching."""
