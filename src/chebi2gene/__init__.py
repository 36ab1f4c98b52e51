"""chebi2gene: from chemical compounds to genes over a federated SPARQL knowledge base.

Main modules:
- sparql_helper: SparqlHelper class executing SELECT queries, and the error types
- query: QueryCatalog with the ChEBI, Rhea, UniProt and ITAG queries and their row folds
- api: Chebi2Gene aggregation and ChEBI name searches
- models: Result cells and the folded result records
"""

from .api import Chebi2Gene, chebi_to_genes, search_chebi_extended, search_chebi_simple
from .models import ChebiEntry, GeneRecord
from .query import QueryCatalog
from .sparql_helper import (
    Chebi2GeneError,
    EndpointUnavailable,
    InvalidIdentifier,
    MalformedResponse,
    QueryRejected,
    SparqlHelper,
)

# Import version information
from .version import VERSION

__all__ = [
    "VERSION",
    "Chebi2Gene",
    "Chebi2GeneError",
    "ChebiEntry",
    "EndpointUnavailable",
    "GeneRecord",
    "InvalidIdentifier",
    "MalformedResponse",
    "QueryCatalog",
    "QueryRejected",
    "SparqlHelper",
    "chebi_to_genes",
    "search_chebi_extended",
    "search_chebi_simple",
]
