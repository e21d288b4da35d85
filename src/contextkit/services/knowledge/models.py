"""
Knowledge data models for contextkit.

Defines the structures for knowledge items, ingestion inputs, search
parameters and the pre/post-processing options of the retrieval pipeline.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any

from pydantic import Field, field_validator

from ...shared.models.base import BaseModel


class KnowledgeScope(str, Enum):
    """Visibility of a knowledge item."""
    AGENT = "agent"
    GLOBAL = "global"
    SESSION = "session"


class KnowledgeSourceType(str, Enum):
    """Types of sources knowledge can be ingested from."""
    TEXT = "text"
    MARKDOWN = "markdown"
    PDF = "pdf"
    CODE = "code"
    JSON = "json"
    YAML = "yaml"
    CSV = "csv"
    URL = "url"


class SearchType(str, Enum):
    """Available retrieval modes."""
    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"


class KnowledgeMetadata(BaseModel):
    """
    Metadata attached to a knowledge item.

    Known fields are typed; anything else (title, tags, author, ...) is kept
    as an extra field.
    """

    source: Optional[str] = Field(default=None, description="Originating path or URL")
    source_type: Optional[KnowledgeSourceType] = Field(default=None, description="Type of the originating source")
    relevance_score: Optional[float] = Field(default=None, description="Retrieval score, set during search")
    chunk_index: Optional[int] = Field(default=None, ge=0, description="Position of the chunk in its document")
    total_chunks: Optional[int] = Field(default=None, ge=0, description="Number of chunks in the document")
    parent_id: Optional[str] = Field(default=None, description="Parent document item ID")
    is_parent: bool = Field(default=False, description="Whether this item is a document parent")
    created: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")

    class Config:
        extra = "allow"


class KnowledgeItem(BaseModel):
    """
    A unit of retrievable knowledge.

    Ingesting a document yields one parent item holding a preview plus one
    item per chunk linked back through ``metadata.parent_id``.
    """

    id: Optional[str] = Field(default=None, description="Unique item identifier")
    content: str = Field(..., description="Item text content")
    embedding: Optional[List[float]] = Field(default=None, description="Vector embedding")
    metadata: KnowledgeMetadata = Field(default_factory=KnowledgeMetadata, description="Item metadata")
    agent_id: Optional[str] = Field(default=None, description="Owning agent ID")
    scope: KnowledgeScope = Field(default=KnowledgeScope.AGENT, description="Item visibility")

    @property
    def is_chunk(self) -> bool:
        return self.metadata.chunk_index is not None

    @property
    def relevance_score(self) -> float:
        return self.metadata.relevance_score or 0.0

    def with_score(self, score: float) -> "KnowledgeItem":
        """Return a copy carrying a new relevance score."""
        metadata = self.metadata.model_copy(update={'relevance_score': score})
        return self.model_copy(update={'metadata': metadata})

    def with_content(self, content: str) -> "KnowledgeItem":
        """Return a copy with replaced content."""
        return self.model_copy(update={'content': content})


class KnowledgeFile(BaseModel):
    """A file handed to ingestion, already read into memory."""

    path: str = Field(..., description="File path, used for identity")
    content: str = Field(default="", description="File content")
    type: KnowledgeSourceType = Field(default=KnowledgeSourceType.TEXT, description="Source type")
    is_shared: bool = Field(default=False, description="Whether the file is shared across agents")


class PreprocessingOptions(BaseModel):
    """Toggles for the text normalization pipeline."""

    remove_markdown: bool = True
    remove_code: bool = True
    remove_urls: bool = True
    normalize_casing: bool = True
    remove_extra_whitespace: bool = True
    remove_stop_words: bool = False
    max_length: Optional[int] = Field(default=None, gt=0)


class PostprocessingOptions(BaseModel):
    """Toggles for the result post-processing pipeline."""

    deduplicate: bool = True
    max_results: int = Field(default=5, ge=0)
    min_relevance_score: float = Field(default=0.6, ge=0.0)
    rerank: bool = True
    highlight_matches: bool = False
    summarize: bool = False


class SearchParams(BaseModel):
    """Parameters for a knowledge search."""

    query: str = Field(..., description="Search query text")
    max_results: Optional[int] = Field(default=None, gt=0, description="Number of results to return")
    min_similarity: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Minimum vector similarity")
    search_type: SearchType = Field(default=SearchType.HYBRID, description="Retrieval mode")
    scope: Optional[KnowledgeScope] = Field(default=None, description="Restrict to a scope")
    agent_id: Optional[str] = Field(default=None, description="Restrict to an agent")
    preprocessing_options: Optional[PreprocessingOptions] = None
    postprocessing_options: Optional[PostprocessingOptions] = None


class KnowledgeConfig(BaseModel):
    """Configuration of a knowledge manager."""

    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    default_min_similarity: float = Field(default=0.75, ge=0.0, le=1.0)
    default_max_results: int = Field(default=5, gt=0)
    stop_words: List[str] = Field(default_factory=list, description="Extra stop words merged with the defaults")
    knowledge_root: str = Field(default="./knowledge")
    preprocessing_options: PreprocessingOptions = Field(default_factory=PreprocessingOptions)
    postprocessing_options: PostprocessingOptions = Field(default_factory=PostprocessingOptions)

    @field_validator('chunk_overlap')
    @classmethod
    def validate_chunk_overlap(cls, v, info):
        chunk_size = info.data.get('chunk_size')
        if chunk_size is not None and v >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return v

    def merged(self, overrides: Optional[Dict[str, Any]] = None) -> "KnowledgeConfig":
        """Return a copy with nested option overrides merged in."""
        if not overrides:
            return self.model_copy(deep=True)

        data = self.model_dump()
        for key, value in overrides.items():
            if key in ('preprocessing_options', 'postprocessing_options') and value is not None:
                if isinstance(value, BaseModel):
                    value = value.model_dump(exclude_unset=True)
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return KnowledgeConfig(**data)
