"""In-memory folder hierarchy for one campaign."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..models.vault import Folder


class FolderTree:
    """
    Folders keyed by id plus a parent -> children index.

    Built from a single load of a campaign's folders so subtree walks
    never go back to the store.
    """

    def __init__(self, folders: Iterable[Folder]) -> None:
        self._folders: Dict[str, Folder] = {}
        self._children: Dict[Optional[str], List[str]] = defaultdict(list)
        for folder in folders:
            self._folders[folder.id] = folder
            self._children[folder.parent_folder_id].append(folder.id)

    def __contains__(self, folder_id: object) -> bool:
        return folder_id in self._folders

    def __len__(self) -> int:
        return len(self._folders)

    def get(self, folder_id: Optional[str]) -> Optional[Folder]:
        if folder_id is None:
            return None
        return self._folders.get(folder_id)

    def children(self, folder_id: Optional[str]) -> List[Folder]:
        return [self._folders[child] for child in self._children.get(folder_id, [])]

    def descendant_ids(self, folder_id: str) -> List[str]:
        """All folders below ``folder_id`` in depth-first pre-order (parents before children)."""
        result: List[str] = []
        seen = {folder_id}
        stack = list(reversed(self._children.get(folder_id, [])))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            stack.extend(reversed(self._children.get(current, [])))
        return result

    def subtree_ids(self, folder_id: str) -> List[str]:
        return [folder_id, *self.descendant_ids(folder_id)]

    def ancestor_ids(self, folder_id: str) -> List[str]:
        """Parent chain from the nearest parent up to the root."""
        result: List[str] = []
        seen = {folder_id}
        current = self.get(folder_id)
        while current is not None and current.parent_folder_id is not None:
            parent_id = current.parent_folder_id
            if parent_id in seen:
                break
            seen.add(parent_id)
            result.append(parent_id)
            current = self.get(parent_id)
        return result

    def is_within(self, folder_id: str, ancestor_id: str) -> bool:
        """True when ``folder_id`` is ``ancestor_id`` or lies below it."""
        return folder_id == ancestor_id or ancestor_id in self.ancestor_ids(folder_id)


__all__ = ["FolderTree"]
