"""Git activity extraction."""

from anchorman.extraction.git_extractor import GitExtractor

__all__ = ["GitExtractor"]
