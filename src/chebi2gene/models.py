"""
Pydantic models for SPARQL results and the compound-to-gene data model.

A query solution is a mapping of variable names to :class:`ResultCell`.
Folded results are plain dictionaries keyed by short identifiers whose
values are lists of strings or the records defined here.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ResultCell(BaseModel):
    """One bound cell in a SPARQL result row."""

    value: str
    type: str  # "uri" | "literal" | "bnode"
    lang: Optional[str] = None
    datatype: Optional[str] = None

    @classmethod
    def from_binding(cls, binding: Dict[str, Any]) -> "ResultCell":
        """Build a cell from a SPARQL JSON results term object."""
        cell_type = binding.get("type", "literal")
        if cell_type not in ("uri", "bnode"):
            # SPARQL 1.0 JSON also uses "typed-literal"
            cell_type = "literal"
        return cls(
            value=binding["value"],
            type=cell_type,
            lang=binding.get("xml:lang"),
            datatype=binding.get("datatype"),
        )

    @property
    def lexical_form(self) -> str:
        """String form of the term, with ``@lang`` or ``^^datatype`` suffix."""
        if self.type == "bnode":
            return f"_:{self.value}"
        if self.type == "literal":
            if self.lang:
                return f"{self.value}@{self.lang}"
            if self.datatype:
                return f"{self.value}^^{self.datatype}"
        return self.value


class _Record(BaseModel):
    """Frozen record that also answers ``record["field"]``; sequences are tuples."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __getitem__(self, key: str) -> Any:
        if key not in type(self).model_fields:
            raise KeyError(key)
        return getattr(self, key)


class ChebiEntry(_Record):
    """Label and synonyms of one ChEBI molecule."""

    name: Tuple[str, ...] = Field(default_factory=tuple, description="Preferred label(s)")
    syn: Tuple[str, ...] = Field(default_factory=tuple, description="Synonyms, one per result row")


class GeneRecord(_Record):
    """One ITAG gene locus encoding a UniProt protein."""

    prot: Optional[str] = Field(None, description="UniProt protein IRI")
    name: Optional[str] = Field(None, description="Gene feature name")
    sca: Optional[str] = Field(None, description="Scaffold")
    start: Optional[str] = Field(None, description="Start position on the scaffold")
    stop: Optional[str] = Field(None, description="Stop position on the scaffold")
    desc: Optional[str] = Field(None, description="Gene description")


# chebiId -> entry
ChebiMatch = Dict[str, ChebiEntry]
# reactionId -> UniProt accessions
ProteinsByReaction = Dict[str, List[str]]
# accession -> pathway comments
PathwaysByProtein = Dict[str, List[str]]
# accession -> organism scientific names
OrganismsByProtein = Dict[str, List[str]]
# accession -> gene loci
GenesByProtein = Dict[str, List[GeneRecord]]
