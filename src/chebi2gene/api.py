"""Main chebi2gene functionalities: compound search and compound-to-gene aggregation."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, TypeVar

from .models import ChebiMatch, GeneRecord
from .query import QueryCatalog
from .sparql_helper import SparqlHelper

__all__ = [
    "Chebi2Gene",
    "chebi_to_genes",
    "search_chebi_extended",
    "search_chebi_simple",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _freeze(mapping: Mapping[str, Iterable[T]]) -> Mapping[str, Tuple[T, ...]]:
    """Read-only view of ``mapping`` with tuple values."""
    return MappingProxyType({key: tuple(values) for key, values in mapping.items()})


class Chebi2Gene:
    """
    Proteins, pathways, genes and organisms associated with one ChEBI compound.

    The aggregation walks Rhea reactions to UniProt proteins, then collects
    the pathway annotations, ITAG genes and organisms of those proteins, in
    that order. It runs once per instance, either at construction when a
    ChEBI id is given or through :meth:`run`. A catalog created here is
    closed when the aggregation ends, successful or not.

    The getters return read-only mappings whose values are tuples.

    Args:
        chebi_id: ChEBI id to aggregate immediately (e.g. ``"17578"``)
        catalog: Query catalog to use; one is created when omitted
        endpoint_url: Endpoint for the created catalog
        debug: Debug flag for the created catalog

    Example:
        >>> result = Chebi2Gene("17578")
        >>> result.get_proteins()["16740"]
    """

    def __init__(
        self,
        chebi_id: Optional[str] = None,
        *,
        catalog: Optional[QueryCatalog] = None,
        endpoint_url: Optional[str] = None,
        debug: Optional[bool] = None,
    ) -> None:
        self._owns_catalog = catalog is None
        self.catalog = catalog or QueryCatalog(endpoint_url=endpoint_url, debug=debug)
        self.chebi_id: Optional[str] = None
        self._proteins: Mapping[str, Tuple[str, ...]] = _freeze({})
        self._pathways: Mapping[str, Tuple[str, ...]] = _freeze({})
        self._genes: Mapping[str, Tuple[GeneRecord, ...]] = _freeze({})
        self._organisms: Mapping[str, Tuple[str, ...]] = _freeze({})

        if chebi_id is not None:
            self.run(chebi_id)

    @classmethod
    def from_chebi(cls, chebi_id: str, **kwargs: Any) -> "Chebi2Gene":
        """Create an instance and run the aggregation for ``chebi_id``."""
        return cls(chebi_id, **kwargs)

    def run(self, chebi_id: str) -> "Chebi2Gene":
        """Run the four-step traversal for ``chebi_id``.

        The first failing step aborts the traversal and its error
        propagates; nothing is stored in that case.

        Raises:
            RuntimeError: If this instance already ran an aggregation
        """
        if self.chebi_id is not None:
            raise RuntimeError(
                f"Aggregation already done for ChEBI:{self.chebi_id}; "
                "use a new Chebi2Gene instance"
            )

        try:
            proteins = self.catalog.proteins_of_chebi(chebi_id)
            pathways = self.catalog.pathways_of_proteins(proteins)
            genes = self.catalog.genes_of_proteins(proteins)
            organisms = self.catalog.organisms_of_proteins(proteins)
        finally:
            self.close()

        self._proteins = _freeze(proteins)
        self._pathways = _freeze(pathways)
        self._genes = _freeze(genes)
        self._organisms = _freeze(organisms)
        self.chebi_id = chebi_id

        logger.info(
            f"ChEBI:{chebi_id}: {len(proteins)} reactions, {len(pathways)} proteins "
            f"with pathways, {len(genes)} with genes, {len(organisms)} with organisms"
        )
        return self

    def get_proteins(self) -> Mapping[str, Tuple[str, ...]]:
        """Reaction id -> UniProt accessions."""
        return self._proteins

    def get_pathways(self) -> Mapping[str, Tuple[str, ...]]:
        """UniProt accession -> pathway comments."""
        return self._pathways

    def get_genes(self) -> Mapping[str, Tuple[GeneRecord, ...]]:
        """UniProt accession -> ITAG gene records."""
        return self._genes

    def get_organisms(self) -> Mapping[str, Tuple[str, ...]]:
        """UniProt accession -> organism scientific names."""
        return self._organisms

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "chebi_id": self.chebi_id,
            "proteins": {key: list(values) for key, values in self._proteins.items()},
            "pathways": {key: list(values) for key, values in self._pathways.items()},
            "genes": {
                prot_id: [gene.model_dump() for gene in genes]
                for prot_id, genes in self._genes.items()
            },
            "organisms": {key: list(values) for key, values in self._organisms.items()},
        }

    def close(self) -> None:
        """Close the catalog if this instance created it."""
        if self._owns_catalog:
            self.catalog.close()

    def __enter__(self) -> "Chebi2Gene":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close an owned catalog."""
        self.close()

    def __repr__(self) -> str:
        return f"Chebi2Gene(chebi_id={self.chebi_id!r})"


def chebi_to_genes(chebi_id: str, endpoint_url: Optional[str] = None) -> Chebi2Gene:
    """Aggregate proteins, pathways, genes and organisms for a ChEBI id.

    Args:
        chebi_id: ChEBI id, without the ``CHEBI:`` prefix
        endpoint_url: SPARQL endpoint (default: configured endpoint)

    Returns:
        Chebi2Gene instance holding the four mappings
    """
    with SparqlHelper(endpoint_url) as helper:
        return Chebi2Gene.from_chebi(chebi_id, catalog=QueryCatalog(helper))


def search_chebi_simple(compound_name: str, endpoint_url: Optional[str] = None) -> ChebiMatch:
    """Search ChEBI for molecules having ``compound_name`` in their name.

    Args:
        compound_name: Name fragment, used as a case-insensitive regex
        endpoint_url: SPARQL endpoint (default: configured endpoint)

    Returns:
        ChEBI id -> :class:`~chebi2gene.models.ChebiEntry` with the name and
        synonyms of each molecule found
    """
    with SparqlHelper(endpoint_url) as helper:
        return QueryCatalog(helper).exact_chebi_search(compound_name)


def search_chebi_extended(compound_name: str, endpoint_url: Optional[str] = None) -> ChebiMatch:
    """Search ChEBI for molecules having ``compound_name`` in their name or synonyms.

    Args:
        compound_name: Name fragment, used as a case-insensitive regex
        endpoint_url: SPARQL endpoint (default: configured endpoint)

    Returns:
        ChEBI id -> :class:`~chebi2gene.models.ChebiEntry`
    """
    with SparqlHelper(endpoint_url) as helper:
        return QueryCatalog(helper).extended_chebi_search(compound_name)
