"""Branded document generation: segmenter, renderers and orchestrator."""
