"""Core domain: models, type catalog, normalization and batching."""
