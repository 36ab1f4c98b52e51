"""Tests for the Chebi2Gene aggregation and the ChEBI searches."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, call, patch

import pytest

from chebi2gene import api
from chebi2gene.api import Chebi2Gene, chebi_to_genes, search_chebi_extended, search_chebi_simple
from chebi2gene.models import ChebiEntry, GeneRecord
from chebi2gene.query import QueryCatalog
from chebi2gene.sparql_helper import EndpointUnavailable, InvalidIdentifier

PROTEINS = {"16740": ["Q38933", "P0C618"]}
PATHWAYS = {"Q38933": ["Carotenoid biosynthesis; beta-carotene biosynthesis."]}
GENES = {
    "Q38933": [
        GeneRecord(
            prot="http://purl.uniprot.org/uniprot/Q38933",
            name="Solyc03g031860",
            sca="SL2.40ch03",
            start="8639868",
            stop="8644839",
            desc="Phytoene synthase",
        )
    ]
}
ORGANISMS = {"Q38933": ["Arabidopsis thaliana"]}


def as_tuples(mapping):
    return {key: tuple(values) for key, values in mapping.items()}


@pytest.fixture()
def catalog():
    catalog = MagicMock(spec=QueryCatalog)
    catalog.proteins_of_chebi.return_value = PROTEINS
    catalog.pathways_of_proteins.return_value = PATHWAYS
    catalog.genes_of_proteins.return_value = GENES
    catalog.organisms_of_proteins.return_value = ORGANISMS
    return catalog


class TestChebi2Gene:
    """Four-step traversal."""

    def test_runs_at_construction(self, catalog):
        result = Chebi2Gene("17578", catalog=catalog)

        assert result.chebi_id == "17578"
        assert result.get_proteins() == as_tuples(PROTEINS)
        assert result.get_pathways() == as_tuples(PATHWAYS)
        assert result.get_genes() == as_tuples(GENES)
        assert result.get_organisms() == as_tuples(ORGANISMS)

    def test_step_order(self, catalog):
        Chebi2Gene("17578", catalog=catalog)
        assert catalog.mock_calls == [
            call.proteins_of_chebi("17578"),
            call.pathways_of_proteins(PROTEINS),
            call.genes_of_proteins(PROTEINS),
            call.organisms_of_proteins(PROTEINS),
        ]

    def test_explicit_run(self, catalog):
        result = Chebi2Gene(catalog=catalog)
        assert result.get_proteins() == {}
        assert result.get_genes() == {}
        catalog.proteins_of_chebi.assert_not_called()

        assert result.run("17578") is result
        assert result.get_organisms() == as_tuples(ORGANISMS)

    def test_factory(self, catalog):
        result = Chebi2Gene.from_chebi("17578", catalog=catalog)
        assert result.get_pathways() == as_tuples(PATHWAYS)

    def test_second_run_needs_new_instance(self, catalog):
        result = Chebi2Gene("17578", catalog=catalog)
        with pytest.raises(RuntimeError):
            result.run("17579")
        assert catalog.proteins_of_chebi.call_count == 1

    def test_halts_on_first_error(self, catalog):
        catalog.pathways_of_proteins.side_effect = EndpointUnavailable("down")

        result = Chebi2Gene(catalog=catalog)
        with pytest.raises(EndpointUnavailable):
            result.run("17578")

        catalog.genes_of_proteins.assert_not_called()
        catalog.organisms_of_proteins.assert_not_called()
        assert result.get_proteins() == {}
        assert result.chebi_id is None

    def test_invalid_id_propagates(self, catalog):
        catalog.proteins_of_chebi.side_effect = InvalidIdentifier("bad")
        with pytest.raises(InvalidIdentifier):
            Chebi2Gene("17 578", catalog=catalog)

    def test_to_dict_is_json_serialisable(self, catalog):
        data = Chebi2Gene("17578", catalog=catalog).to_dict()

        assert data["chebi_id"] == "17578"
        assert data["proteins"] == PROTEINS
        assert data["genes"]["Q38933"][0]["name"] == "Solyc03g031860"
        json.dumps(data)

    def test_endpoint_is_forwarded(self, mock_session):
        result = Chebi2Gene(endpoint_url="http://sparql-r:8890/sparql/", debug=True)
        assert result.catalog.helper.endpoint_url == "http://sparql-r:8890/sparql/"
        assert result.catalog.helper.debug is True

    def test_getters_are_read_only(self, catalog):
        result = Chebi2Gene("17578", catalog=catalog)

        with pytest.raises(TypeError):
            result.get_proteins()["16741"] = []
        assert result.get_proteins()["16740"] == ("Q38933", "P0C618")
        assert "16741" not in result.get_proteins()

    def test_results_are_copied_from_the_catalog(self, catalog):
        proteins = {"16740": ["Q38933"]}
        catalog.proteins_of_chebi.return_value = proteins

        result = Chebi2Gene("17578", catalog=catalog)
        proteins["16740"].append("P0C618")

        assert result.get_proteins()["16740"] == ("Q38933",)

    def test_given_catalog_is_left_open(self, catalog):
        Chebi2Gene("17578", catalog=catalog)
        catalog.close.assert_not_called()

    def test_owned_catalog_is_closed_after_run(self, mock_session):
        with patch.object(api.QueryCatalog, "proteins_of_chebi", return_value={}):
            Chebi2Gene("17578")
        mock_session.close.assert_called_once()

    def test_owned_catalog_is_closed_on_error(self, mock_session):
        with patch.object(
            api.QueryCatalog, "proteins_of_chebi", side_effect=EndpointUnavailable("down"),
        ):
            with pytest.raises(EndpointUnavailable):
                Chebi2Gene("17578")
        mock_session.close.assert_called_once()

    def test_context_manager_closes_owned_catalog(self, mock_session):
        with Chebi2Gene() as result:
            assert result.chebi_id is None
        mock_session.close.assert_called_once()


class TestModuleFunctions:
    """One-off helpers that own their SPARQL session."""

    def test_chebi_to_genes(self, mock_session):
        with patch.object(api.QueryCatalog, "proteins_of_chebi", return_value={}) as proteins:
            result = chebi_to_genes("17578", endpoint_url="http://sparql-r:8890/sparql/")

        proteins.assert_called_once_with("17578")
        assert result.get_genes() == {}
        mock_session.close.assert_called_once()

    def test_search_chebi_simple(self, mock_session):
        match = {"35309": ChebiEntry(name=["n"], syn=["s"])}
        with patch.object(api.QueryCatalog, "exact_chebi_search", return_value=match) as search:
            assert search_chebi_simple("-beta-carotene") == match
        search.assert_called_once_with("-beta-carotene")
        mock_session.close.assert_called_once()

    def test_search_chebi_extended(self, mock_session):
        with patch.object(api.QueryCatalog, "extended_chebi_search", return_value={}) as search:
            assert search_chebi_extended("trans-beta-carotene") == {}
        search.assert_called_once_with("trans-beta-carotene")
