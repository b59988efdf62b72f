"""
Folder tree validation for file sharing.

The tree for one scope (organization or a department) is small, so checks
load a {folder_id: parent_id} map once and walk it in memory.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Mapping, Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.file import SharedFile, SharedFolder
from feedback_hub_shared.schemas.files import MAX_FOLDER_DEPTH

ParentMap = Mapping[uuid.UUID, Optional[uuid.UUID]]


# ---------------------------------------------------------------------------
# Pure tree helpers
# ---------------------------------------------------------------------------


def ancestor_chain(parents: ParentMap, folder_id: Optional[uuid.UUID]) -> list[uuid.UUID]:
    """`folder_id` followed by its ancestors up to the root."""
    chain: list[uuid.UUID] = []
    current = folder_id
    while current is not None and current not in chain:
        chain.append(current)
        current = parents.get(current)
    return chain


def depth_below(parents: ParentMap, parent_id: Optional[uuid.UUID]) -> int:
    """Level a new child of `parent_id` would occupy (root children are level 1)."""
    return len(ancestor_chain(parents, parent_id)) + 1


def is_within_subtree(parents: ParentMap, candidate: uuid.UUID, root: uuid.UUID) -> bool:
    """True when `candidate` is `root` or one of its descendants."""
    return root in ancestor_chain(parents, candidate)


def subtree_height(parents: ParentMap, folder_id: uuid.UUID) -> int:
    """Levels in the subtree rooted at `folder_id` (a leaf has height 1)."""
    children: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    for child, parent in parents.items():
        if parent is not None:
            children[parent].append(child)

    height = 0
    frontier = [folder_id]
    seen: set[uuid.UUID] = set()
    while frontier:
        height += 1
        seen.update(frontier)
        frontier = [c for f in frontier for c in children[f] if c not in seen]
    return height


# ---------------------------------------------------------------------------
# Database-backed checks
# ---------------------------------------------------------------------------


async def load_parent_map(
    session: AsyncSession, department_id: Optional[uuid.UUID]
) -> dict[uuid.UUID, Optional[uuid.UUID]]:
    result = await session.execute(
        select(SharedFolder.id, SharedFolder.parent_id).where(
            SharedFolder.department_id == department_id
        )
    )
    return {row[0]: row[1] for row in result.all()}


async def ensure_unique_name(
    session: AsyncSession,
    name: str,
    parent_id: Optional[uuid.UUID],
    department_id: Optional[uuid.UUID],
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    stmt = select(SharedFolder.id).where(
        SharedFolder.name == name,
        SharedFolder.parent_id == parent_id,
        SharedFolder.department_id == department_id,
    )
    if exclude_id is not None:
        stmt = stmt.where(SharedFolder.id != exclude_id)
    if (await session.execute(stmt)).first():
        raise HTTPException(status_code=400, detail="A folder with this name already exists here")


async def ensure_can_place(
    session: AsyncSession,
    folder_id: Optional[uuid.UUID],
    parent_id: Optional[uuid.UUID],
    department_id: Optional[uuid.UUID],
) -> None:
    """Validate putting a new (folder_id=None) or existing folder under parent_id."""
    if parent_id is None:
        return
    if folder_id is not None and parent_id == folder_id:
        raise HTTPException(status_code=400, detail="A folder cannot be its own parent")

    parents = await load_parent_map(session, department_id)
    if parent_id not in parents:
        raise HTTPException(status_code=400, detail="Parent folder does not belong to this scope")

    height = 1
    if folder_id is not None:
        if is_within_subtree(parents, parent_id, folder_id):
            raise HTTPException(
                status_code=400, detail="Cannot move a folder into its own subfolder"
            )
        height = subtree_height(parents, folder_id)

    if depth_below(parents, parent_id) + height - 1 > MAX_FOLDER_DEPTH:
        raise HTTPException(
            status_code=400,
            detail=f"Folders can be nested at most {MAX_FOLDER_DEPTH} levels deep",
        )


async def ensure_empty(session: AsyncSession, folder_id: uuid.UUID) -> None:
    child = await session.execute(
        select(SharedFolder.id).where(SharedFolder.parent_id == folder_id).limit(1)
    )
    if child.first():
        raise HTTPException(status_code=400, detail="Folder contains subfolders")
    files = await session.execute(
        select(SharedFile.id).where(SharedFile.folder_id == folder_id).limit(1)
    )
    if files.first():
        raise HTTPException(status_code=400, detail="Folder contains files")
