"""Tests for identifier and folding helpers."""

import pytest

from chebi2gene.sparql_helper import InvalidIdentifier
from chebi2gene.utils import (
    append_unique,
    chebi_local_id,
    local_name,
    render_iri_list,
    upsert,
    validate_identifier,
)

UNIPROT = "http://purl.uniprot.org/uniprot/"


class TestRenderIriList:
    """IRI list fragment used inside ``IN ( ... )``."""

    def test_three_items(self):
        assert render_iri_list(["a", "b", "c"], UNIPROT) == (
            "<http://purl.uniprot.org/uniprot/a>, \n"
            "<http://purl.uniprot.org/uniprot/b>, \n"
            "<http://purl.uniprot.org/uniprot/c>\n"
        )

    def test_single_item_has_no_comma(self):
        assert render_iri_list(["Q38933"], UNIPROT) == "<http://purl.uniprot.org/uniprot/Q38933>\n"

    def test_empty(self):
        assert render_iri_list([], UNIPROT) == ""

    def test_order_is_kept(self):
        fragment = render_iri_list(["P0C618", "Q38933"], UNIPROT)
        assert fragment.index("P0C618") < fragment.index("Q38933")

    def test_accepts_any_iterable(self):
        assert render_iri_list(iter(["x"]), "http://example.org/") == "<http://example.org/x>\n"

    def test_rejects_broken_accession(self):
        with pytest.raises(InvalidIdentifier):
            render_iri_list(["Q38933", "P0C>618"], UNIPROT)


class TestValidateIdentifier:
    """Identifiers embedded in IRIs."""

    @pytest.mark.parametrize("value", ["17578", "Q38933", "CHEBI:17578", "A0A024R161-2"])
    def test_valid(self, value):
        assert validate_identifier(value) == value

    @pytest.mark.parametrize(
        "value", ["", "175 78", "17578\n", "17578>", "<17578", 'a"b', "a{b}", "a|b", "a\\b", "a^b", "a`b"],
    )
    def test_invalid(self, value):
        with pytest.raises(InvalidIdentifier):
            validate_identifier(value)

    def test_invalid_identifier_is_value_error(self):
        with pytest.raises(ValueError, match="ChEBI id"):
            validate_identifier("1 2", "ChEBI id")


class TestLocalName:
    """Identifier extraction from IRIs and cross-references."""

    def test_slash(self):
        assert local_name("http://purl.uniprot.org/uniprot/Q38933") == "Q38933"

    def test_hash(self):
        assert local_name("http://www.ebi.ac.uk/rhea#16740", "#") == "16740"

    def test_after_last_delimiter(self):
        assert local_name("UNIPROT:UNIPROT:P0C618", "UNIPROT:") == "P0C618"

    def test_no_delimiter(self):
        assert local_name("P0C618", "UNIPROT:") == "P0C618"

    def test_chebi_id(self):
        assert chebi_local_id("http://purl.obolibrary.org/obo/CHEBI_35309") == "35309"


class TestUpsert:
    """Fold primitive."""

    def test_insert_then_update(self):
        mapping = {}
        upsert(mapping, "k", lambda: [1], lambda values: values.append(2))
        upsert(mapping, "k", lambda: [1], lambda values: values.append(2))
        assert mapping == {"k": [1, 2]}

    def test_on_insert_not_called_for_existing_key(self):
        mapping = {"k": []}

        def fail():
            raise AssertionError("on_insert called")

        upsert(mapping, "k", fail, lambda values: values.append("x"))
        assert mapping == {"k": ["x"]}

    def test_append_unique(self):
        values = ["a"]
        append_unique(values, "a")
        append_unique(values, "b")
        assert values == ["a", "b"]
