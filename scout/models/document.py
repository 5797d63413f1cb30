"""Documents, search results and retrieval outcomes."""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, StrictBool, StrictFloat, StrictInt, StrictStr

# StrictBool first so True never validates as the integer 1.
MetadataValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr]
Metadata = dict[str, MetadataValue]

RetrievalStatus = Literal["ok", "no_results"]


class Document(BaseModel):
    """A stored unit of content addressed by a caller-supplied id.

    Documents without a vector take part in lexical search only.
    """

    id: str = Field(description="Globally unique, caller-supplied identifier")
    content: str = Field(description="Full text of the snippet or chunk")
    metadata: Metadata = Field(default_factory=dict)
    vector: Optional[list[float]] = Field(
        None, description="Embedding; absent for lexical-only documents"
    )

    @property
    def has_vector(self) -> bool:
        return self.vector is not None


class SearchResult(BaseModel):
    """Single ranked hit. Scores are comparable only within one query."""

    id: str
    score: float
    content: str
    metadata: Metadata = Field(default_factory=dict)


class QueryExpansion(BaseModel):
    """Alternate phrasings of a query, each searched as an independent term."""

    original_query: str
    expanded_terms: list[str] = Field(default_factory=list)


class RetrievalResult(BaseModel):
    """Ranked, deduplicated answer set for one user query."""

    query: str
    results: list[SearchResult] = Field(default_factory=list)
    confidence: float = 0.0
    search_terms: list[str] = Field(
        default_factory=list, description="Terms searched, in priority order"
    )
    failed_terms: list[str] = Field(
        default_factory=list, description="Terms dropped after an embedding failure"
    )
    status: RetrievalStatus = "ok"

    @property
    def found(self) -> bool:
        return self.status == "ok"


class ChatResponse(BaseModel):
    """Natural-language answer with the sources it was grounded on."""

    answer: str
    sources: list[SearchResult] = Field(default_factory=list)
    confidence: float = 0.0
    search_terms: list[str] = Field(default_factory=list)
