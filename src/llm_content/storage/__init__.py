"""Artifact storage for llm_content."""

from .store import ArtifactStore

__all__ = ["ArtifactStore"]
