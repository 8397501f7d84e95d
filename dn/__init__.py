"""Distinguished name parsing, comparison and membership filters."""

from .errors import DirectoryTreeError, MalformedNameError
from .filters import EntryFilter, accept, has_leaf_prefix
from .names import Dn, NameLike, Rdn, coerce_dn, is_descendant_of, parse, subtract_common_tail

__all__ = [
    "DirectoryTreeError",
    "Dn",
    "EntryFilter",
    "MalformedNameError",
    "NameLike",
    "Rdn",
    "accept",
    "coerce_dn",
    "has_leaf_prefix",
    "is_descendant_of",
    "parse",
    "subtract_common_tail",
]
