"""contactscrub - duplicate detection and merging for personal contacts."""

from .config import Config, ConfigManager, MatchingConfig, load_config
from .deduplication import (
    DeduplicationEngine,
    DuplicateGroup,
    MergeExecutor,
    MergeResult,
    find_duplicates,
    merge_group,
)
from .logging_config import setup_logging
from .models import ContactRecord, MatchType, MergeStrategy

__all__ = [
    "Config",
    "ConfigManager",
    "MatchingConfig",
    "load_config",
    "DeduplicationEngine",
    "DuplicateGroup",
    "MergeExecutor",
    "MergeResult",
    "find_duplicates",
    "merge_group",
    "ContactRecord",
    "MatchType",
    "MergeStrategy",
    "setup_logging",
]

__version__ = "1.0.0"
