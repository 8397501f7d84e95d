"""Membership predicates used to drop entries before they reach the tree."""

from __future__ import annotations

import logging

from .names import Dn, NameLike, coerce_dn, is_descendant_of

logger = logging.getLogger(__name__)


def accept(candidate: NameLike, base: NameLike) -> bool:
    """True when ``candidate`` is ``base`` itself or lies below it."""
    candidate_dn = coerce_dn(candidate)
    base_dn = coerce_dn(base)
    return candidate_dn == base_dn or is_descendant_of(candidate_dn, base_dn)


def has_leaf_prefix(candidate: NameLike, prefix: str) -> bool:
    """True when the value of the leaf component starts with ``prefix`` (case-insensitive).

    The empty DN has no leaf and is always rejected.
    """
    leaf = coerce_dn(candidate).leaf
    if leaf is None:
        return False
    return leaf.value.casefold().startswith(prefix.casefold())


class EntryFilter:
    """Combines base DN membership and the leaf prefix policy.

    Args:
        base_dn: Only names equal to or below this DN are accepted.
        prefix: Leaf values must start with it; empty disables the check.
    """

    def __init__(self, base_dn: NameLike, prefix: str = ""):
        self.base_dn: Dn = coerce_dn(base_dn)
        self.prefix = prefix

    def rejection_reason(self, candidate: NameLike) -> str | None:
        """Return why ``candidate`` is rejected, or None when it is accepted."""
        dn = coerce_dn(candidate)
        if not accept(dn, self.base_dn):
            return f"not an element of configuration base DN '{self.base_dn}'"
        if self.prefix and not has_leaf_prefix(dn, self.prefix):
            return f"does not have configured prefix '{self.prefix}'"
        return None

    def __call__(self, candidate: NameLike) -> bool:
        reason = self.rejection_reason(candidate)
        if reason is not None:
            logger.warning(f"Entry '{candidate}' {reason} (entry ignored).")
            return False
        return True


__all__ = ["EntryFilter", "accept", "has_leaf_prefix"]
