from .config import (
    ExtractConfig,
    HtmlSiftConfig,
    InlineImageFormat,
    LinkExtractionConfig,
    MonitoringConfig,
    ProcessorSettings,
    TableFormat,
    config_for_markdown,
    config_for_rss,
    config_for_search_index,
    config_for_summary,
    find_config_file,
)

__all__ = [
    "ExtractConfig",
    "HtmlSiftConfig",
    "InlineImageFormat",
    "LinkExtractionConfig",
    "MonitoringConfig",
    "ProcessorSettings",
    "TableFormat",
    "config_for_markdown",
    "config_for_rss",
    "config_for_search_index",
    "config_for_summary",
    "find_config_file",
]
