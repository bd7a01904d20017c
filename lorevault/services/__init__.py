"""Service layer: tag and link pipelines, persistence and vault operations."""

from .config import AppConfig, get_config, reload_config
from .database import DatabaseService, init_database
from .errors import (
    ConfigurationError,
    LoreVaultError,
    NotFoundError,
    StoreError,
    VaultValidationError,
)
from .folder_index import FolderIndexService, build_index_body
from .folder_tree import FolderTree
from .indexer import IndexerService
from .link_parser import parse_links
from .seed import seed_campaign_if_needed
from .sqlite_store import SQLiteVaultStore
from .store import VaultStore
from .tag_health import build_tag_health_report
from .tag_parser import normalize_tags, parse_tags_from_markdown
from .tag_validator import TagVocabulary, get_vocabulary, load_vocabulary, validate_tags
from .vault import VaultService, build_vault_service

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "DatabaseService",
    "init_database",
    "LoreVaultError",
    "StoreError",
    "NotFoundError",
    "VaultValidationError",
    "ConfigurationError",
    "VaultStore",
    "SQLiteVaultStore",
    "parse_tags_from_markdown",
    "normalize_tags",
    "validate_tags",
    "TagVocabulary",
    "load_vocabulary",
    "get_vocabulary",
    "build_tag_health_report",
    "parse_links",
    "FolderTree",
    "IndexerService",
    "FolderIndexService",
    "build_index_body",
    "VaultService",
    "build_vault_service",
    "seed_campaign_if_needed",
]
