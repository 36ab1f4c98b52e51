"""Query catalog: parameterised SPARQL templates and result folding.

This module holds the five SELECT templates run against the ChEBI, Rhea,
UniProt and ITAG named graphs, together with:

* query builders that inject a name, a ChEBI id or an IRI list into a
  template,
* row folds that turn name-indexed result rows into the nested mappings
  of :mod:`chebi2gene.models`,
* :class:`QueryCatalog`, which runs builder, query and fold for each
  operation through a :class:`~chebi2gene.sparql_helper.SparqlHelper`.

Builders and folds are pure functions; all HTTP work is delegated to
``SparqlHelper``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from rdflib import Namespace, URIRef

from chebi2gene.models import (
    ChebiEntry,
    ChebiMatch,
    GeneRecord,
    GenesByProtein,
    OrganismsByProtein,
    PathwaysByProtein,
    ProteinsByReaction,
)
from chebi2gene.sparql_helper import MalformedResponse, SparqlHelper
from chebi2gene.utils import (
    append_unique,
    chebi_local_id,
    local_name,
    render_iri_list,
    upsert,
    validate_identifier,
)

logger = logging.getLogger(__name__)


class NamedGraphs:
    """Named graphs of the plant breeding knowledge base."""

    ITAG = "http://itag2.pbr.wur.nl/"
    UNIPROT = "http://uniprot.pbr.wur.nl/"
    CHEBI = "http://chebi.pbr.wur.nl/"
    RHEA = "http://rhea.pbr.wur.nl/"


PREFIXES: dict[str, str] = {
    "rdfs": "http://www.w3.org/2000/01/rdf-schema#",
    "obo": "http://purl.obolibrary.org/obo#",
    "gene": "http://pbr.wur.nl/GENE#",
    "pos": "http://pbr.wur.nl/POSITION#",
    "uniprot": "http://purl.uniprot.org/core/",
    "bp": "http://www.biopax.org/release/biopax-level2.owl#",
}

UNIPROT_ENTRY = Namespace("http://purl.uniprot.org/uniprot/")
RHEA_CHEBI_XREF = "http://www.ebi.ac.uk/rhea#CHEBI:"

CHEBI_VARIABLES = ("id", "name", "syn")
PROTEIN_VARIABLES = ("react", "xref")
GENE_VARIABLES = ("prot", "name", "sca", "start", "stop", "desc")
PATHWAY_VARIABLES = ("prot", "desc")
ORGANISM_VARIABLES = ("prot", "name")


def _prefix_block(*names: str) -> str:
    return "".join(f"PREFIX {name}: <{PREFIXES[name]}>\n" for name in names)


# ── Templates ─────────────────────────────────────────────────────
# Filled with str.format(); SPARQL braces are doubled.

CHEBI_SEARCH_TEMPLATE = """{prefixes}SELECT DISTINCT ?id ?name ?syn
FROM <{graph}>
WHERE {{
  {{
    ?id rdfs:label ?name .
    ?id obo:Synonym ?syn .
    FILTER (
      {condition}
    )
  }}
}} ORDER BY ?id
"""

PROTEINS_OF_CHEBI_TEMPLATE = """{prefixes}SELECT DISTINCT ?react ?xref
FROM <{graph}>
WHERE {{
  ?cmp bp:XREF {compound} .
  ?dir ?p ?cmp .
  ?react ?p2 ?dir .
  ?react bp:XREF ?xref .
  FILTER (
    regex(?xref, 'UNIPROT')
  )
}}
"""

GENES_OF_PROTEINS_TEMPLATE = """{prefixes}SELECT DISTINCT ?prot ?name ?sca ?start ?stop ?desc
FROM <{graph}>
WHERE {{
  ?gene gene:Protein ?prot .
  FILTER (
    ?prot IN (
{proteins}    )
  )
  ?gene gene:Position ?pos .
  ?pos pos:Scaffold ?sca .
  ?gene gene:Description ?desc .
  ?gene gene:FeatureName ?name .
  ?pos pos:Start ?start .
  ?pos pos:Stop ?stop .
}} ORDER BY ?name
"""

PATHWAYS_OF_PROTEINS_TEMPLATE = """{prefixes}SELECT DISTINCT ?prot ?desc
FROM <{graph}>
WHERE {{
  ?prot uniprot:annotation ?annot .
  ?annot rdfs:seeAlso ?url .
  ?annot rdfs:comment ?desc .
  FILTER (
    ?prot IN (
{proteins}    )
  )
}}
"""

ORGANISMS_OF_PROTEINS_TEMPLATE = """{prefixes}SELECT DISTINCT ?prot ?name
FROM <{graph}>
WHERE {{
  ?prot uniprot:organism ?orga .
  ?orga uniprot:scientificName ?name .
  FILTER (
    ?prot IN (
{proteins}    )
  )
}}
"""


# ── Query builders ────────────────────────────────────────────────


def build_chebi_search_query(name: str, extended: bool = False) -> str:
    """Build the ChEBI name search, matching synonyms too when ``extended``.

    ``name`` goes verbatim into a case-insensitive regex literal; regex
    meta-characters are interpreted by the endpoint.
    """
    condition = f'regex(?name, "{name}", "i")'
    if extended:
        condition += f'\n      || regex(?syn, "{name}", "i")'
    return CHEBI_SEARCH_TEMPLATE.format(
        prefixes=_prefix_block("rdfs", "obo"),
        graph=NamedGraphs.CHEBI,
        condition=condition,
    )


def build_proteins_of_chebi_query(chebi_id: str) -> str:
    """Build the Rhea query for reactions involving a ChEBI compound."""
    compound = URIRef(RHEA_CHEBI_XREF + validate_identifier(chebi_id, "ChEBI id"))
    return PROTEINS_OF_CHEBI_TEMPLATE.format(
        prefixes=_prefix_block("bp"),
        graph=NamedGraphs.RHEA,
        compound=compound.n3(),
    )


def build_genes_of_proteins_query(accessions: Iterable[str]) -> str:
    """Build the ITAG query for genes encoding the given UniProt accessions."""
    return GENES_OF_PROTEINS_TEMPLATE.format(
        prefixes=_prefix_block("gene", "pos"),
        graph=NamedGraphs.ITAG,
        proteins=render_iri_list(accessions, str(UNIPROT_ENTRY)),
    )


def build_pathways_of_proteins_query(accessions: Iterable[str]) -> str:
    """Build the UniProt query for pathway annotations of the given accessions."""
    return PATHWAYS_OF_PROTEINS_TEMPLATE.format(
        prefixes=_prefix_block("uniprot", "rdfs"),
        graph=NamedGraphs.UNIPROT,
        proteins=render_iri_list(accessions, str(UNIPROT_ENTRY)),
    )


def build_organisms_of_proteins_query(accessions: Iterable[str]) -> str:
    """Build the UniProt query for the organisms of the given accessions."""
    return ORGANISMS_OF_PROTEINS_TEMPLATE.format(
        prefixes=_prefix_block("uniprot"),
        graph=NamedGraphs.UNIPROT,
        proteins=render_iri_list(accessions, str(UNIPROT_ENTRY)),
    )


# ── Row folds ─────────────────────────────────────────────────────


def _required(row: Mapping[str, str], variable: str) -> str:
    try:
        return row[variable]
    except KeyError:
        raise MalformedResponse(
            f"Solution without a binding for ?{variable}: {dict(row)}"
        ) from None


def fold_chebi_rows(rows: Iterable[Mapping[str, str]]) -> ChebiMatch:
    """Group ``?id ?name ?syn`` rows by ChEBI id.

    The first row of an id provides its name; every row adds its synonym,
    duplicates included.
    """
    folded: dict[str, dict[str, list[str]]] = {}
    for row in rows:
        chebi_id = chebi_local_id(_required(row, "id"))
        syn = _required(row, "syn")
        upsert(
            folded,
            chebi_id,
            lambda: {"name": [_required(row, "name")], "syn": [syn]},
            lambda entry: entry["syn"].append(syn),
        )
    return {chebi_id: ChebiEntry(**entry) for chebi_id, entry in folded.items()}


def fold_protein_rows(rows: Iterable[Mapping[str, str]]) -> ProteinsByReaction:
    """Group ``?react ?xref`` rows into reaction id -> unique UniProt accessions."""
    folded: ProteinsByReaction = {}
    for row in rows:
        reaction_id = local_name(_required(row, "react"), "#")
        accession = local_name(_required(row, "xref"), "UNIPROT:")
        upsert(
            folded,
            reaction_id,
            lambda: [accession],
            lambda accessions: append_unique(accessions, accession),
        )
    return folded


def fold_gene_rows(
    rows: Iterable[Mapping[str, str]],
    into: GenesByProtein | None = None,
) -> GenesByProtein:
    """Append one :class:`GeneRecord` per row under its protein accession.

    Records are not de-duplicated; pass ``into`` to union several result
    sets into one mapping.
    """
    folded: GenesByProtein = {} if into is None else into
    for row in rows:
        prot_id = local_name(_required(row, "prot"), "/")
        gene = GeneRecord(**{var: row[var] for var in GENE_VARIABLES if var in row})
        upsert(folded, prot_id, lambda: [gene], lambda genes: genes.append(gene))
    return folded


def fold_annotation_rows(
    rows: Iterable[Mapping[str, str]],
    value_variable: str,
    into: dict[str, list[str]] | None = None,
) -> dict[str, list[str]]:
    """Collect the unique values of ``value_variable`` per protein accession."""
    folded: dict[str, list[str]] = {} if into is None else into
    for row in rows:
        prot_id = local_name(_required(row, "prot"), "/")
        value = _required(row, value_variable)
        upsert(
            folded,
            prot_id,
            lambda: [value],
            lambda values: append_unique(values, value),
        )
    return folded


# ── Catalog ───────────────────────────────────────────────────────


class QueryCatalog:
    """
    Run the compound and protein queries against one SPARQL endpoint.

    A helper created here is owned by the catalog and released by
    :meth:`close`; a helper passed in is left to its caller.

    Args:
        helper: SPARQL helper to use; one is created when omitted
        endpoint_url: Endpoint for the created helper
        debug: Debug flag for the created helper

    Example:
        >>> with QueryCatalog() as catalog:
        ...     proteins = catalog.proteins_of_chebi("17578")
        ...     catalog.organisms_of_proteins(proteins)
    """

    def __init__(
        self,
        helper: SparqlHelper | None = None,
        *,
        endpoint_url: str | None = None,
        debug: bool | None = None,
    ) -> None:
        self._owns_helper = helper is None
        self.helper = helper or SparqlHelper(endpoint_url, debug=debug)

    def exact_chebi_search(self, name: str) -> ChebiMatch:
        """Search ChEBI for molecules whose label matches ``name``."""
        query = build_chebi_search_query(name)
        rows = self.helper.select_records(query, CHEBI_VARIABLES)
        return fold_chebi_rows(rows)

    def extended_chebi_search(self, name: str) -> ChebiMatch:
        """Search ChEBI for molecules whose label or a synonym matches ``name``."""
        query = build_chebi_search_query(name, extended=True)
        rows = self.helper.select_records(query, CHEBI_VARIABLES)
        return fold_chebi_rows(rows)

    def proteins_of_chebi(self, chebi_id: str) -> ProteinsByReaction:
        """Return the UniProt accessions of the Rhea reactions involving a compound.

        Raises:
            InvalidIdentifier: If ``chebi_id`` cannot be used in an IRI
        """
        query = build_proteins_of_chebi_query(chebi_id)
        rows = self.helper.select_records(query, PROTEIN_VARIABLES)
        proteins = fold_protein_rows(rows)
        logger.debug(f"ChEBI:{chebi_id} -> {len(proteins)} reactions")
        return proteins

    def genes_of_proteins(self, proteins: ProteinsByReaction) -> GenesByProtein:
        """Return the ITAG genes encoding the proteins, one query per reaction."""
        genes: GenesByProtein = {}
        for accessions in self._protein_lists(proteins):
            query = build_genes_of_proteins_query(accessions)
            fold_gene_rows(self.helper.select_records(query, GENE_VARIABLES), into=genes)
        return genes

    def pathways_of_proteins(self, proteins: ProteinsByReaction) -> PathwaysByProtein:
        """Return the UniProt pathway comments of the proteins."""
        pathways: PathwaysByProtein = {}
        for accessions in self._protein_lists(proteins):
            query = build_pathways_of_proteins_query(accessions)
            rows = self.helper.select_records(query, PATHWAY_VARIABLES)
            fold_annotation_rows(rows, "desc", into=pathways)
        return pathways

    def organisms_of_proteins(self, proteins: ProteinsByReaction) -> OrganismsByProtein:
        """Return the scientific names of the organisms of the proteins."""
        organisms: OrganismsByProtein = {}
        for accessions in self._protein_lists(proteins):
            query = build_organisms_of_proteins_query(accessions)
            rows = self.helper.select_records(query, ORGANISM_VARIABLES)
            fold_annotation_rows(rows, "name", into=organisms)
        return organisms

    @staticmethod
    def _protein_lists(proteins: ProteinsByReaction) -> list[list[str]]:
        """Validated, non-empty accession lists, one per reaction."""
        lists = []
        for reaction_id, accessions in proteins.items():
            if not accessions:
                logger.debug(f"Reaction {reaction_id} has no proteins, skipped")
                continue
            for accession in accessions:
                validate_identifier(accession, "accession")
            lists.append(list(accessions))
        return lists

    def close(self) -> None:
        """Close the helper if this catalog created it."""
        if self._owns_helper:
            self.helper.close()

    def __enter__(self) -> QueryCatalog:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close an owned helper."""
        self.close()
