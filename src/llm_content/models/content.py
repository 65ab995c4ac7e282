"""Content item and stored Markdown document models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

# (item id, language code)
ArtifactKey = tuple[int, str]


@dataclass(frozen=True)
class ContentItem:
    """
    A content record to convert, as seen by the conversion pipeline.

    Read-only here: the CMS owns the item, llm_content only reads the
    fields it needs for frontmatter, eligibility and the artifact key.

    Attributes:
        id: Item identifier
        langcode: Language code of this translation
        published: Publication state
        type: Bundle/type tag (e.g. "article")
        title: Human-readable label, may contain markup
        created: Creation time
        revised: Time of the latest revision, if known
        path: Canonical path alias, if the CMS has one
        default_translation: Whether this is the item's default language
    """

    id: int
    langcode: str
    published: bool
    type: str
    title: str
    created: datetime
    revised: Optional[datetime] = None
    path: Optional[str] = None
    default_translation: bool = True

    @property
    def key(self) -> ArtifactKey:
        return (self.id, self.langcode)


@dataclass
class MarkdownDocument:
    """The persisted Markdown artifact for one (item, language) pair."""

    item_id: int
    langcode: str
    body: str
    generated_at: int

    @property
    def key(self) -> ArtifactKey:
        return (self.item_id, self.langcode)
