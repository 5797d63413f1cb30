"""Pure helpers: vector math, chunking and provider adapters."""
