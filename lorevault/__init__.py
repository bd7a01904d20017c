"""Campaign wiki engine: tags, wiki-links, folder indexes and trash cascades."""

__version__ = "0.1.0"
