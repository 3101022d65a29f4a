"""Core board logic: models, store, data sources, configuration."""
