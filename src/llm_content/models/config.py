"""Pydantic configuration models for llm_content."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SiteConfig(BaseModel):
    """Site identity used in the banner of exported corpora."""

    name: str = Field("Site", description="Site name shown as the corpus heading")
    slogan: str = Field("", description="Optional slogan rendered as a blockquote")
    base_url: str = Field("", description="Scheme and host prefixed to sitemap locations")

    model_config = {"extra": "forbid"}


class ConversionConfig(BaseModel):
    """Configuration for HTML normalization and frontmatter."""

    accordion_title_class: str = Field(
        "field--name-field-accordion-title",
        description="Class token marking accordion title fields (rewritten to <h3>)",
    )
    embed_url_class: str = Field(
        "field--name-field-embed-url",
        description="Class token marking plain-text embed URL fields (rewritten to links)",
    )
    timezone: str = Field("UTC", description="Timezone used for frontmatter dates")
    item_path_template: str = Field(
        "/node/{item_id}",
        description="Fallback item path when no alias is known",
    )
    markdown_path_template: str = Field(
        "/node/{item_id}/llm-md",
        description="Path of the Markdown view of an item, used in the llms.txt index",
    )

    model_config = {"extra": "forbid"}


class StorageConfig(BaseModel):
    """Configuration for the artifact store."""

    database: Path = Field(Path("llm_content.db"), description="SQLite database file")
    timeout: float = Field(30.0, gt=0, description="Seconds to wait for a locked database")

    model_config = {"extra": "forbid"}


class ExportConfig(BaseModel):
    """Configuration for corpus export and index generation."""

    max_items: int = Field(500, ge=1, description="Maximum documents in an exported corpus")
    index_items: int = Field(500, ge=1, description="Maximum entries in the llms.txt index")
    sitemap_items: int = Field(50000, ge=1, description="Maximum item entries in the Markdown sitemap")
    corpus_file: Optional[Path] = Field(None, description="Where to write the full corpus (llms-full.txt)")

    model_config = {"extra": "forbid"}


class LlmContentConfig(BaseModel):
    """
    Root configuration model for llm_content.

    Example:
        config = LlmContentConfig(
            enabled_content_types=["article", "page"],
            site=SiteConfig(name="Example"),
        )

    YAML format:
        enabled_content_types: [article, page]
        view_mode: full
        site:
          name: Example
          slogan: Things we wrote
          base_url: https://example.com
        storage:
          database: ./llm_content.db
    """

    enabled_content_types: list[str] = Field(
        default_factory=list,
        description="Content types whose items are converted",
    )
    view_mode: str = Field("full", description="View mode the renderer is asked for")
    auto_generate: bool = Field(True, description="Regenerate artifacts when items are saved")

    # Nested configuration sections
    site: SiteConfig = Field(default_factory=SiteConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def is_enabled_type(self, content_type: str) -> bool:
        return content_type in self.enabled_content_types

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "LlmContentConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "LlmContentConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text(encoding="utf-8"))
