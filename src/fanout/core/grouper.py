"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Groups work items by size and by fingerprint.
Group membership always follows enumeration order, never completion order.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List

from fanout.core.interfaces import ItemGrouper
from fanout.core.models import DuplicateGroup, WorkItem


class ItemGrouperImpl(ItemGrouper):
    """
    Groups items and keeps only buckets that can hold duplicates (>= 2 members).
    """

    def group_by_size(self, items: List[WorkItem]) -> Dict[int, List[WorkItem]]:
        """Groups items by size. Items without a known size are left out."""
        return self._group_by(
            [item for item in items if item.size is not None],
            lambda item: item.size,
        )

    def group_by_fingerprint(self, items: List[WorkItem]) -> List[DuplicateGroup]:
        """
        Groups fingerprinted items.
        Returns:
            List[DuplicateGroup], each in enumeration order, ordered by keeper index
        """
        buckets = self._group_by(
            [item for item in items if item.fingerprint is not None],
            lambda item: item.fingerprint,
        )
        groups = [DuplicateGroup(fingerprint=key, items=members) for key, members in buckets.items()]
        groups.sort(key=lambda g: g.keeper.index)
        return groups

    @staticmethod
    def _group_by(items: List[WorkItem], key_func: Callable[[WorkItem], Any]) -> Dict[Any, List[WorkItem]]:
        """
        Helper method to group items by any computed key.
        Args:
            items: List of items to group
            key_func: Function that computes a hashable key from a WorkItem
        Returns:
            Dict[key, List[WorkItem]] sorted by enumeration index inside each bucket
        """
        groups = defaultdict(list)
        for item in sorted(items, key=lambda i: i.index):
            groups[key_func(item)].append(item)

        return {key: group for key, group in groups.items() if len(group) >= 2}
