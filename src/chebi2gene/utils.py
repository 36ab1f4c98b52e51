"""
Common helpers for query composition and result folding.

This module contains the small string and mapping utilities shared by the
query catalog: identifier validation, identifier extraction from IRIs,
rendering of IRI lists for ``FILTER ( ?x IN ( ... ) )`` clauses, and the
``upsert`` primitive every row fold is built on.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, MutableMapping, TypeVar

from rdflib import URIRef

from chebi2gene.sparql_helper import InvalidIdentifier

K = TypeVar("K")
V = TypeVar("V")

# Characters that cannot appear inside an IRI reference (RFC 3987) and
# would break the ``<...>`` term they are injected into.
_IRI_BREAKING = re.compile(r'[\s<>"{}|\\^`]')


def validate_identifier(value: str, kind: str = "identifier") -> str:
    """
    Check that an identifier can be embedded in an IRI.

    Args:
        value: Identifier supplied by the caller (ChEBI id, accession)
        kind: Human-readable name used in the error message

    Returns:
        The identifier, unchanged

    Raises:
        InvalidIdentifier: If the value is empty or holds IRI-breaking characters
    """
    if not isinstance(value, str) or not value:
        raise InvalidIdentifier(f"Empty {kind}: {value!r}")
    match = _IRI_BREAKING.search(value)
    if match:
        raise InvalidIdentifier(
            f"Invalid {kind} {value!r}: character {match.group()!r} not allowed in an IRI"
        )
    return value


def local_name(value: str, delimiter: str = "/") -> str:
    """Return the substring after the last ``delimiter`` in ``value``.

    Examples::

        >>> local_name("http://purl.uniprot.org/uniprot/Q38933")
        'Q38933'
        >>> local_name("http://www.ebi.ac.uk/rhea#16740", "#")
        '16740'
        >>> local_name("UNIPROT:P0C618", "UNIPROT:")
        'P0C618'
    """
    return value.rsplit(delimiter, 1)[-1]


def chebi_local_id(uri: str) -> str:
    """Extract the numeric ChEBI id from a ChEBI term IRI.

    ``http://purl.obolibrary.org/obo/CHEBI_35309`` gives ``35309``.
    """
    return local_name(local_name(uri, "/"), "_")


def render_iri_list(identifiers: Iterable[str], base: str) -> str:
    """
    Render identifiers as a comma separated list of IRIs.

    Each identifier is appended to ``base`` and written in angle brackets.
    Items are separated by ``", \\n"`` and the last one is followed by a
    single newline, so the fragment can be dropped inside ``IN ( ... )``.

    Args:
        identifiers: Local identifiers (e.g. UniProt accessions)
        base: Namespace the identifiers are appended to

    Returns:
        The rendered fragment, or an empty string for no identifiers

    Raises:
        InvalidIdentifier: If one of the identifiers cannot be used in an IRI
    """
    terms = [
        URIRef(base + validate_identifier(identifier, "accession")).n3()
        for identifier in identifiers
    ]
    if not terms:
        return ""
    return ", \n".join(terms) + "\n"


def upsert(
    mapping: MutableMapping[K, V],
    key: K,
    on_insert: Callable[[], V],
    on_update: Callable[[V], None],
) -> None:
    """Insert ``on_insert()`` under ``key`` or update the existing value in place."""
    if key in mapping:
        on_update(mapping[key])
    else:
        mapping[key] = on_insert()


def append_unique(values: list, value) -> None:
    """Append ``value`` to ``values`` unless it is already present."""
    if value not in values:
        values.append(value)
