# mlm_system/utils/hierarchy.py
"""
Sponsor tree stored as an arena: sellers addressed by integer index,
each with a parent pointer and a list of children.
"""
from typing import Dict, List, Iterable, Optional
import logging

from mlm_system.exceptions import InvalidHierarchyError, SellerNotFoundError

logger = logging.getLogger(__name__)


class SellerHierarchy:
    """Arena of sellers linked by sponsor codes."""

    def __init__(self, sellers: Iterable):
        self.nodes: List = []
        self.indexByCode: Dict[str, int] = {}
        self.parent: List[Optional[int]] = []
        self.children: List[List[int]] = []

        for seller in sellers:
            if seller.sellerCode in self.indexByCode:
                continue
            self.indexByCode[seller.sellerCode] = len(self.nodes)
            self.nodes.append(seller)
            self.parent.append(None)
            self.children.append([])

        for index, seller in enumerate(self.nodes):
            sponsorIndex = self.indexByCode.get(seller.sponsorCode) if seller.sponsorCode else None
            if sponsorIndex is not None:
                self.parent[index] = sponsorIndex
                self.children[sponsorIndex].append(index)

    def __len__(self):
        return len(self.nodes)

    def indexOf(self, sellerCode: str) -> int:
        if sellerCode not in self.indexByCode:
            raise SellerNotFoundError(sellerCode)
        return self.indexByCode[sellerCode]

    def checkAcyclic(self):
        """
        Walk every parent chain once.
        Raises InvalidHierarchyError with the codes on the cycle.
        """
        cleared = [False] * len(self.nodes)

        for start in range(len(self.nodes)):
            if cleared[start]:
                continue

            path = []
            onPath = set()
            current = start
            while current is not None and not cleared[current]:
                if current in onPath:
                    cycleStart = path.index(current)
                    cycle = [self.nodes[i].sellerCode for i in path[cycleStart:]]
                    cycle.append(self.nodes[current].sellerCode)
                    logger.error(f"Sponsor cycle detected: {' -> '.join(cycle)}")
                    raise InvalidHierarchyError(cycle)
                onPath.add(current)
                path.append(current)
                current = self.parent[current]

            for index in path:
                cleared[index] = True

    def directRecruits(self, index: int) -> List[int]:
        return list(self.children[index])

    def subtree(self, index: int) -> List[int]:
        """Index plus all descendants, depth first."""
        result = []
        stack = [index]
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self.children[current]))
        return result
