"""
SPARQL Helper - SELECT query execution and tabular projection of solutions.

This module is the SPARQL client used by the query catalog. It handles:
- Sending SELECT queries over HTTP GET (or form-encoded POST)
- Reading SPARQL JSON and SPARQL XML results with lexical forms kept verbatim
- HTML error page detection in responses
- Projecting solutions onto a list of variables as lexical term strings
- Mapping transport, HTTP and payload failures onto library exceptions

Usage:
    from chebi2gene.sparql_helper import SparqlHelper

    with SparqlHelper("http://sparql.plantbreeding.nl:8080/sparql/") as helper:
        rows = helper.select_rows("SELECT ?s ?o WHERE { ?s ?p ?o } LIMIT 10", ["s", "o"])
        records = helper.select_records("SELECT ?s WHERE { ?s ?p ?o } LIMIT 10", ["s"])
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Iterator, Sequence

import requests

from chebi2gene.config import Config
from chebi2gene.models import ResultCell

logger = logging.getLogger(__name__)


class Chebi2GeneError(Exception):
    """Base exception for chebi2gene errors."""

    pass


class EndpointUnavailable(Chebi2GeneError):
    """Raised when the HTTP request to the endpoint cannot complete."""

    pass


class QueryRejected(Chebi2GeneError):
    """Raised when the endpoint answers with an HTTP error status."""

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(Chebi2GeneError):
    """Raised when the response is not a usable SPARQL SELECT result."""

    pass


class InvalidIdentifier(Chebi2GeneError, ValueError):
    """Raised when an identifier would break the IRI it is injected into."""

    pass


# MIME types for SPARQL responses
class MimeTypes:
    """Standard MIME types for SPARQL protocol."""

    JSON = "application/sparql-results+json"
    XML = "application/sparql-results+xml"

    SELECT_ACCEPT = f"{JSON}, {XML};q=0.9"


SPARQL_RESULTS_NS = "{http://www.w3.org/2005/sparql-results#}"
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"


class SparqlHelper:
    """
    SPARQL SELECT executor bound to one endpoint.

    Every query is a single request: there is no retry and no method
    fallback, failures surface as :class:`Chebi2GeneError` subclasses.
    The HTTP response is closed before a call returns or raises; the
    underlying session is released by :meth:`close`.

    Attributes:
        endpoint_url: The SPARQL endpoint URL
        debug: Log service, query text and solution count at INFO
        use_post: Send queries as form-encoded POST instead of GET
        timeout: Request timeout in seconds

    Example:
        >>> helper = SparqlHelper(debug=True)
        >>> helper.select_values("SELECT ?g WHERE { GRAPH ?g { } }", "g")
    """

    # HTML markers that indicate an error page instead of results
    HTML_MARKERS = ("<!DOCTYPE", "<html", "<HTML", "<!doctype")

    def __init__(
        self,
        endpoint_url: str | None = None,
        *,
        debug: bool | None = None,
        use_post: bool | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the SPARQL helper.

        Args:
            endpoint_url: SPARQL endpoint URL (default: ``Config.SPARQL_ENDPOINT``)
            debug: Trace queries at INFO (default: ``Config.DEBUG``)
            use_post: Always use POST (default: ``Config.SPARQL_USE_POST``)
            timeout: Request timeout in seconds (default: ``Config.SPARQL_TIMEOUT``)
        """
        self._endpoint_url = endpoint_url or Config.SPARQL_ENDPOINT
        self.debug = Config.DEBUG if debug is None else debug
        self.use_post = Config.SPARQL_USE_POST if use_post is None else use_post
        self.timeout = Config.SPARQL_TIMEOUT if timeout is None else timeout

        # Session for connection reuse
        self._session = requests.Session()

        logger.debug(f"SparqlHelper initialized for {self._endpoint_url}")

    @property
    def endpoint_url(self) -> str:
        """URL of the SPARQL endpoint queried by this helper."""
        return self._endpoint_url

    @endpoint_url.setter
    def endpoint_url(self, url: str) -> None:
        self._endpoint_url = url
        logger.info(f"SparqlHelper - Endpoint: {url}")

    def select(self, query: str) -> dict[str, Any]:
        """
        Execute a SELECT query and return JSON results.

        Args:
            query: SPARQL SELECT query string

        Returns:
            Dictionary with SPARQL JSON results format:
            {
                "head": {"vars": ["s", "p", "o"]},
                "results": {"bindings": [...]}
            }

        Raises:
            EndpointUnavailable: If the request cannot complete
            QueryRejected: If the endpoint answers with an HTTP error
            MalformedResponse: If the body is not a SELECT result
        """
        if self.debug:
            logger.info(f"Service: \n{self._endpoint_url}")
            logger.info(f"Query: \n{query}")

        body, content_type = self._execute(query)
        results = self._parse_results(body, content_type)

        if self.debug:
            count = len(results["results"]["bindings"])
            logger.info(f"{count} statements in the ResultSet")

        return results

    def solutions(self, query: str) -> Iterator[dict[str, ResultCell]]:
        """
        Execute a SELECT query and yield one mapping of bound cells per solution.

        The whole result is fetched and validated before the first solution
        is yielded, so a failure never leaves a partially consumed stream.
        """
        bindings = self.select(query)["results"]["bindings"]
        for binding in bindings:
            yield {
                var: ResultCell.from_binding(term)
                for var, term in binding.items()
            }

    def select_rows(self, query: str, variables: Sequence[str]) -> list[tuple[str, ...]]:
        """
        Execute a SELECT query and project each solution onto ``variables``.

        For each solution the lexical forms of the requested variables are
        collected in order. An unbound variable contributes nothing, so
        such a row is shorter than ``variables`` and no longer aligned.

        Args:
            query: SPARQL SELECT query string
            variables: Variable names, without the leading ``?``

        Returns:
            List of positional rows of lexical term strings
        """
        rows = []
        for solution in self.solutions(query):
            rows.append(tuple(
                solution[var].lexical_form for var in variables if var in solution
            ))
        return rows

    def select_records(self, query: str, variables: Sequence[str]) -> list[dict[str, str]]:
        """
        Execute a SELECT query and return name-indexed rows.

        Same projection as :meth:`select_rows`, but each row maps variable
        names to lexical forms and unbound variables are simply absent.

        Example:
            >>> for row in helper.select_records("SELECT ?s ?p { ?s ?p ?o }", ["s", "p"]):
            ...     print(row["s"], row.get("p"))
        """
        return [
            {var: solution[var].lexical_form for var in variables if var in solution}
            for solution in self.solutions(query)
        ]

    def select_values(self, query: str, variable: str) -> list[str]:
        """Execute a SELECT query and return the lexical forms of one variable."""
        return [
            solution[variable].lexical_form
            for solution in self.solutions(query)
            if variable in solution
        ]

    def is_available(self, timeout: float = 5.0) -> bool:
        """Ping the endpoint with ``ASK {}`` and report whether it answered."""
        try:
            response = self._session.get(
                self._endpoint_url,
                params={"query": "ASK {}"},
                headers={"Accept": MimeTypes.SELECT_ACCEPT},
                timeout=timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.debug(f"Endpoint {self._endpoint_url} unreachable: {e}")
            return False
        try:
            return bool(response.ok)
        finally:
            response.close()

    def _execute(self, query: str) -> tuple[str, str]:
        """
        Send the query and return the response body and content type.

        Raises:
            EndpointUnavailable: On connection errors, timeouts and broken streams
            QueryRejected: On HTTP 4xx/5xx answers
        """
        headers = {
            "Accept": MimeTypes.SELECT_ACCEPT,
            "User-Agent": "chebi2gene/1.0 (SPARQL client)",
        }

        try:
            if self.use_post:
                logger.debug("Executing SELECT with POST")
                headers["Content-Type"] = "application/x-www-form-urlencoded"
                response = self._session.post(
                    self._endpoint_url,
                    data={"query": query},
                    headers=headers,
                    timeout=self.timeout,
                )
            else:
                logger.debug("Executing SELECT with GET")
                response = self._session.get(
                    self._endpoint_url,
                    params={"query": query},
                    headers=headers,
                    timeout=self.timeout,
                )
        except requests.exceptions.RequestException as e:
            logger.error(f"Endpoint {self._endpoint_url} unavailable: {e}")
            raise EndpointUnavailable(f"Cannot reach {self._endpoint_url}: {e}") from e

        try:
            response.raise_for_status()
            return response.text, response.headers.get("Content-Type", "")
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0
            logger.error(f"Query rejected by {self._endpoint_url}: HTTP {status_code}")
            logger.error(f"Query: \n{query}")
            raise QueryRejected(f"HTTP {status_code}: {e}", status_code=status_code) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Reading response from {self._endpoint_url} failed: {e}")
            raise EndpointUnavailable(f"Incomplete response from {self._endpoint_url}: {e}") from e
        finally:
            response.close()

    def _parse_results(self, body: str, content_type: str) -> dict[str, Any]:
        """
        Parse a SELECT response body into the SPARQL JSON results shape.

        Raises:
            MalformedResponse: If the body is HTML, unparseable or not a SELECT result
        """
        if self._is_html_response(body):
            logger.error("Endpoint returned HTML instead of SPARQL results")
            raise MalformedResponse("Endpoint returned HTML instead of SPARQL results")

        mime = content_type.split(";", 1)[0].strip().lower()
        is_xml = mime in (MimeTypes.XML, "application/xml", "text/xml") or (
            not mime.endswith("json") and body.lstrip().startswith("<")
        )

        try:
            if is_xml:
                results = self._xml_to_json(body)
            else:
                results = json.loads(body)
        except Exception as e:
            logger.error(f"Cannot parse SPARQL results ({mime or 'no content type'}): {e}")
            raise MalformedResponse(f"Unparseable SPARQL results: {e}") from e

        bindings = results.get("results", {}).get("bindings") if isinstance(results, dict) else None
        if not isinstance(bindings, list):
            logger.error("Response is not a SPARQL SELECT result")
            raise MalformedResponse("Response holds no SELECT bindings")

        return results

    @staticmethod
    def _xml_to_json(body: str) -> dict[str, Any]:
        """
        Convert SPARQL XML results to the JSON results shape.

        Term text and the ``datatype`` / ``xml:lang`` attributes are copied
        as they appear in the document, so lexical forms stay verbatim.
        """
        root = ET.fromstring(body)
        results = root.find(f"{SPARQL_RESULTS_NS}results")
        if results is None:
            raise ValueError("no <results> element, not a SELECT result")

        variables = [
            variable.get("name")
            for variable in root.iterfind(f"{SPARQL_RESULTS_NS}head/{SPARQL_RESULTS_NS}variable")
        ]
        bindings = []
        for result in results.iterfind(f"{SPARQL_RESULTS_NS}result"):
            solution = {}
            for binding in result.iterfind(f"{SPARQL_RESULTS_NS}binding"):
                if len(binding) == 0:
                    continue
                term = binding[0]
                cell = {
                    "type": term.tag.replace(SPARQL_RESULTS_NS, "", 1),
                    "value": term.text or "",
                }
                if term.get(XML_LANG):
                    cell["xml:lang"] = term.get(XML_LANG)
                if term.get("datatype"):
                    cell["datatype"] = term.get("datatype")
                solution[binding.get("name")] = cell
            bindings.append(solution)

        return {"head": {"vars": variables}, "results": {"bindings": bindings}}

    def _is_html_response(self, content: str) -> bool:
        """Check if content appears to be HTML (error page) instead of results."""
        if not content:
            return False
        stripped = content.strip()
        return any(stripped.startswith(marker) for marker in self.HTML_MARKERS)

    def close(self) -> None:
        """Close the underlying requests session."""
        self._session.close()

    def __enter__(self) -> SparqlHelper:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close session."""
        self.close()

    def __repr__(self) -> str:
        return f"SparqlHelper({self._endpoint_url!r}, debug={self.debug})"


# Convenience functions for one-off use
def select_rows(
    endpoint_url: str,
    query: str,
    variables: Sequence[str],
) -> list[tuple[str, ...]]:
    """
    Execute a one-off SELECT query and return positional rows.

    Args:
        endpoint_url: SPARQL endpoint URL
        query: SPARQL SELECT query
        variables: Variable names to project, in order

    Returns:
        List of rows of lexical term strings (see :meth:`SparqlHelper.select_rows`)
    """
    with SparqlHelper(endpoint_url) as helper:
        return helper.select_rows(query, variables)


def check_endpoint(endpoint_url: str, timeout: float = 5.0) -> bool:
    """Return True if the endpoint answers an ``ASK {}`` probe."""
    with SparqlHelper(endpoint_url) as helper:
        return helper.is_available(timeout=timeout)
