"""
Product Alias Resolver

Maps human-readable product group names to the product ids behind them,
and labels a product id with its group.
"""

from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

UNCLASSIFIED = "outro"


class ProductAliasResolver:
    """
    Read-only alias table, loaded once at startup.

    Example:
        resolver = ProductAliasResolver({"porto": ["ckq2trvr800250zlral88xgrz"]})
        resolver.resolve(["Porto"], ["other-id"])
        resolver.label_for("ckq2trvr800250zlral88xgrz")  # "porto"
    """

    def __init__(self, aliases: Mapping[str, Iterable[str]]):
        self._aliases = MappingProxyType(
            {label.strip().lower(): tuple(ids) for label, ids in aliases.items()}
        )

    @property
    def labels(self) -> List[str]:
        return list(self._aliases)

    def ids_for(self, alias: str) -> tuple:
        """Product ids of one alias; empty for unknown names."""
        return self._aliases.get(alias.strip().lower(), ())

    def resolve(self, alias_names: Iterable[str], explicit_ids: Iterable[str]) -> List[str]:
        """Union of every alias's ids and the explicit ids, without duplicates."""
        from_aliases = [pid for name in alias_names for pid in self.ids_for(name)]
        return list(dict.fromkeys([*from_aliases, *explicit_ids]))

    def label_for(self, product_id: Optional[str]) -> str:
        """First alias containing ``product_id``; "outro" if none, "" for no id."""
        if not product_id:
            return ""
        for label, ids in self._aliases.items():
            if product_id in ids:
                return label
        return UNCLASSIFIED
