"""Version information for :mod:`chebi2gene`."""

VERSION = "0.1.0"
