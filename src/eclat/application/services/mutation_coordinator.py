"""Optimistic edits of cached assets with per-entity sequencing.

Every concrete edit is a declaration of its field delta handed to
:meth:`MutationCoordinator._run`, which captures the pre-mutation values,
applies the patch to the cache, issues the request and then commits or rolls
back.  Edits on one asset are numbered by a per-entity sequence; each patched
field is owned by the newest mutation that wrote it, and a rollback only
restores fields its mutation still owns.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence, Union

from eclat.application.interfaces import (
    CatalogBackend,
    Notification,
    NotificationLevel,
    NotificationSink,
)
from eclat.application.services.asset_cache import AssetCache
from eclat.application.services.query_engine import QueryEngine
from eclat.application.services.selection_controller import SelectionController
from eclat.config import (
    AGGREGATE_COLLECTIONS,
    AGGREGATE_COLORS,
    AGGREGATE_STATS,
    AGGREGATE_TAGS,
    CONVERTIBLE_FILE_TYPES,
    DEFAULT_REQUEST_TIMEOUT_SEC,
    ILLEGAL_FILENAME_CHARS,
    MAX_DESCRIPTION_LENGTH,
    MAX_RATING,
)
from eclat.domain.models import ASSET_FIELDS, AssetRecord, AssetType, CollectionRef, MutationStatus, PendingMutation
from eclat.domain.models.core import IMMUTABLE_FIELDS
from eclat.errors import BackendError, ValidationError
from eclat.errors.handler import ErrorHandler
from eclat.events.bus import EventBus
from eclat.events.catalog_events import AssetsMutatedEvent
from eclat.utils.aio import with_timeout

LOGGER = logging.getLogger(__name__)

Request = Callable[[], Awaitable[Optional[AssetRecord]]]
WRITABLE_FIELDS = sorted(ASSET_FIELDS - IMMUTABLE_FIELDS)


def _split_extension(name: str) -> tuple[str, str]:
    dot = name.rfind(".")
    if dot <= 0:
        return name, ""
    return name[:dot], name[dot:]


def _replace_basename(path: str, name: str) -> str:
    cut = max(path.rfind("/"), path.rfind("\\"))
    return path[:cut + 1] + name if cut >= 0 else name


def _normalise_tags(tag_names: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for tag in tag_names:
        tag = str(tag).strip()
        if tag:
            seen.setdefault(tag, None)
    return tuple(seen)


class MutationCoordinator:
    """Applies local edits optimistically and reconciles them with the server."""

    def __init__(
        self,
        backend: CatalogBackend,
        cache: AssetCache,
        query_engine: QueryEngine,
        selection: SelectionController,
        error_handler: ErrorHandler,
        event_bus: Optional[EventBus] = None,
        notifications: Optional[NotificationSink] = None,
        timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT_SEC,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._engine = query_engine
        self._selection = selection
        self._errors = error_handler
        self._events = event_bus
        self._notifications = notifications
        self._timeout = timeout

        self._sequences: dict[int, int] = {}
        # entity id -> field name -> sequence of the mutation that last wrote it
        self._owners: dict[int, dict[str, int]] = {}
        # entity id -> mutations in sequence order, pruned once settled
        self._history: dict[int, list[PendingMutation]] = {}
        self._locks: dict[int, asyncio.Lock] = {}

        self.last_validation_error: Optional[ValidationError] = None

    def set_notification_sink(self, sink: Optional[NotificationSink]) -> None:
        self._notifications = sink

    def pending(self, asset_id: int) -> list[PendingMutation]:
        return [m for m in self._history.get(asset_id, ()) if m.status is MutationStatus.OPTIMISTIC]

    def has_pending(self, asset_id: Optional[int] = None) -> bool:
        if asset_id is not None:
            return bool(self.pending(asset_id))
        return any(self.pending(entity_id) for entity_id in list(self._history))

    # ------------------------------------------------------------------
    # Single-entity edits
    # ------------------------------------------------------------------
    async def toggle_favorite(self, asset_id: int) -> bool:
        record = self._require(asset_id)
        mutation = await self._run(
            asset_id,
            "favorite",
            {"is_favorite": not record.is_favorite},
            lambda: self._backend.toggle_favorite(asset_id),
            invalidates=(AGGREGATE_STATS,),
            failure_title="Failed to toggle favorite",
        )
        return mutation.status is MutationStatus.COMMITTED

    async def set_hidden(self, asset_id: int, hidden: bool) -> bool:
        hidden = bool(hidden)
        mutation = await self._run(
            asset_id,
            "hidden",
            {"is_hidden": hidden},
            lambda: self._backend.set_hidden(asset_id, hidden),
            invalidates=(AGGREGATE_STATS,),
            failure_title="Failed to update hidden status",
        )
        if mutation.status is MutationStatus.COMMITTED:
            if hidden:
                self._notify_success("Hidden", "Asset has been hidden")
            else:
                self._notify_success("Unhidden", "Asset is visible again")
            return True
        return False

    async def rename(self, asset_id: int, new_name: str) -> bool:
        """Rename the asset's file, keeping its original extension.

        Raises :class:`ValidationError` for an empty name, a name with path
        characters, or a name equal to the current one.
        """
        record = self._require(asset_id)
        final_name = self._validate_name(record, new_name)
        patch = {"name": final_name, "file_path": _replace_basename(record.file_path, final_name)}
        mutation = await self._run(
            asset_id,
            "rename",
            patch,
            lambda: self._backend.rename_asset(asset_id, final_name),
            invalidates=(),
            failure_title="Failed to rename asset",
        )
        if mutation.status is MutationStatus.COMMITTED:
            self._notify_success("Success", "Asset renamed successfully")
            return True
        return False

    async def update_tags(self, asset_id: int, tag_names: Iterable[str]) -> bool:
        self._require(asset_id)
        tags = _normalise_tags(tag_names)
        mutation = await self._run(
            asset_id,
            "tags",
            {"tags": tags},
            lambda: self._backend.update_tags(asset_id, list(tags)),
            invalidates=(AGGREGATE_TAGS, AGGREGATE_STATS),
            failure_title="Failed to update tags",
        )
        return mutation.status is MutationStatus.COMMITTED

    async def update_metadata(
        self,
        asset_id: int,
        rating: Optional[int] = None,
        description: Optional[str] = None,
    ) -> bool:
        self._require(asset_id)
        patch: dict[str, Any] = {}
        if rating is not None:
            if isinstance(rating, bool) or not isinstance(rating, int) or not 0 <= rating <= MAX_RATING:
                self._reject(f"Rating must be between 0 and {MAX_RATING}", "out_of_range", "rating")
            patch["rating"] = rating
        if description is not None:
            if len(description) > MAX_DESCRIPTION_LENGTH:
                self._reject(
                    f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters", "too_long", "description"
                )
            patch["description"] = description
        if not patch:
            self._reject("Nothing to update", "unchanged")
        mutation = await self._run(
            asset_id,
            "metadata",
            patch,
            lambda: self._backend.mutate_asset_fields(asset_id, dict(patch)),
            invalidates=(),
            failure_title="Failed to update asset",
        )
        return mutation.status is MutationStatus.COMMITTED

    async def change_type(self, asset_id: int, asset_type: Union[str, AssetType]) -> bool:
        record = self._require(asset_id)
        target = AssetType.parse(asset_type)
        if record.asset_type.value not in CONVERTIBLE_FILE_TYPES or target.value not in CONVERTIBLE_FILE_TYPES:
            self._reject(
                f"Cannot change type from '{record.asset_type.value}' to '{target.value}'",
                "unsupported",
                "asset_type",
            )
        if target is record.asset_type:
            self._reject("Asset already has this type", "unchanged", "asset_type")
        mutation = await self._run(
            asset_id,
            "type",
            {"asset_type": target},
            lambda: self._backend.set_asset_type(asset_id, target.value),
            invalidates=(AGGREGATE_STATS,),
            failure_title="Failed to change asset type",
        )
        return mutation.status is MutationStatus.COMMITTED

    # ------------------------------------------------------------------
    # Bulk edits
    # ------------------------------------------------------------------
    async def add_to_collection(self, collection: Union[int, CollectionRef], asset_ids: Iterable[int]) -> list[int]:
        """Add assets to a collection concurrently; returns the ids that failed."""
        ref = collection if isinstance(collection, CollectionRef) else CollectionRef(id=int(collection), name="")

        def patch_for(record: AssetRecord) -> dict[str, Any]:
            if record.in_collection(ref.id):
                return {"collections": record.collections}
            return {"collections": record.collections + (ref,)}

        return await self._run_collection_bulk(
            "collection-add",
            ref.id,
            asset_ids,
            patch_for,
            lambda asset_id: self._backend.add_asset_to_collection(ref.id, asset_id),
            "Failed to add to collection",
        )

    async def remove_from_collection(
        self, collection: Union[int, CollectionRef], asset_ids: Iterable[int]
    ) -> list[int]:
        """Remove assets from a collection concurrently; returns the ids that failed."""
        collection_id = collection.id if isinstance(collection, CollectionRef) else int(collection)

        def patch_for(record: AssetRecord) -> dict[str, Any]:
            kept = tuple(ref for ref in record.collections if ref.id != collection_id)
            return {"collections": kept}

        return await self._run_collection_bulk(
            "collection-remove",
            collection_id,
            asset_ids,
            patch_for,
            lambda asset_id: self._backend.remove_asset_from_collection(collection_id, asset_id),
            "Failed to remove from collection",
        )

    async def _run_collection_bulk(
        self,
        kind: str,
        collection_id: int,
        asset_ids: Iterable[int],
        patch_for: Callable[[AssetRecord], dict[str, Any]],
        request_for: Callable[[int], Awaitable[None]],
        failure_title: str,
    ) -> list[int]:
        ids = list(dict.fromkeys(asset_ids))
        runs = []
        for asset_id in ids:
            record = self._cache.get(asset_id)
            patch = patch_for(record) if record is not None else {}
            runs.append(
                self._run(
                    asset_id,
                    kind,
                    patch,
                    (lambda aid=asset_id: request_for(aid)),
                    invalidates=(AGGREGATE_COLLECTIONS,),
                    failure_title=failure_title,
                    report_failure=False,
                    refresh_active=False,
                    collection_id=collection_id,
                )
            )
        mutations = await asyncio.gather(*runs)
        failed = [m.entity_id for m in mutations if m.status is MutationStatus.ROLLED_BACK]
        if failed:
            self._errors.handle(
                BackendError(f"{len(failed)} of {len(ids)} assets could not be updated"),
                title=failure_title,
                context={"collection_id": collection_id, "failed": failed},
            )
        if len(failed) < len(ids):
            await self._refresh_if_left_mode([m.entity_id for m in mutations if m.status is MutationStatus.COMMITTED])
        return failed

    async def delete_permanently(self, asset_ids: Iterable[int]) -> bool:
        """Delete assets on the server; the cache is only touched on success."""
        ids = list(dict.fromkeys(asset_ids))
        if not ids:
            return False
        try:
            await with_timeout(self._backend.delete_assets_permanently(ids), self._timeout, "delete")
        except BackendError as exc:
            self._errors.handle(exc, title="Failed to delete asset", context={"asset_ids": ids})
            return False
        LOGGER.info("[MUTATION] Deleted %d asset(s) permanently", len(ids))
        self._cache.evict(ids)
        self._selection.discard(ids)
        self._cache.invalidate_lists()
        self._cache.invalidate_aggregates((AGGREGATE_STATS, AGGREGATE_TAGS, AGGREGATE_COLLECTIONS, AGGREGATE_COLORS))
        self._publish("delete", ids)
        message = "Asset deleted permanently" if len(ids) == 1 else f"{len(ids)} assets deleted permanently"
        self._notify_success("Success", message)
        return True

    async def move_to_trash(self, asset_ids: Iterable[int]) -> bool:
        return await self._set_deleted(asset_ids, True)

    async def restore(self, asset_ids: Iterable[int]) -> bool:
        return await self._set_deleted(asset_ids, False)

    async def _set_deleted(self, asset_ids: Iterable[int], deleted: bool) -> bool:
        ids = list(dict.fromkeys(asset_ids))
        if not ids:
            return False
        kind = "trash" if deleted else "restore"
        request = self._backend.trash_assets if deleted else self._backend.restore_assets
        try:
            await with_timeout(request(ids), self._timeout, kind)
        except BackendError as exc:
            title = "Failed to move to trash" if deleted else "Failed to restore"
            self._errors.handle(exc, title=title, context={"asset_ids": ids})
            return False
        LOGGER.info("[MUTATION] %s %d asset(s)", "Trashed" if deleted else "Restored", len(ids))
        mode = self._engine.snapshot.mode
        leaving = []
        for asset_id in ids:
            updated = self._cache.write_fields(asset_id, {"is_deleted": deleted})
            if updated is not None and not mode.matches(updated):
                leaving.append(asset_id)
        self._selection.discard(leaving)
        self._cache.invalidate_lists()
        self._cache.invalidate_aggregates((AGGREGATE_STATS,))
        self._publish(kind, ids)
        await self._engine.refresh()
        return True

    # ------------------------------------------------------------------
    # Combinator
    # ------------------------------------------------------------------
    async def _run(
        self,
        asset_id: int,
        kind: str,
        patch: dict[str, Any],
        request: Request,
        invalidates: Sequence[str] = (),
        failure_title: str = "Operation Failed",
        report_failure: bool = True,
        refresh_active: bool = True,
        collection_id: Optional[int] = None,
    ) -> PendingMutation:
        illegal = IMMUTABLE_FIELDS.intersection(patch)
        if illegal:
            raise ValueError(f"cannot patch immutable field(s): {sorted(illegal)}")

        self.last_validation_error = None
        sequence = self._sequences.get(asset_id, 0) + 1
        self._sequences[asset_id] = sequence
        mutation = PendingMutation(entity_id=asset_id, sequence=sequence, kind=kind, patch=dict(patch))
        self._apply(mutation)

        lock = self._locks.setdefault(asset_id, asyncio.Lock())
        try:
            async with lock:
                response = await with_timeout(request(), self._timeout, kind)
        except BackendError as exc:
            self._rollback(mutation, exc)
            if report_failure:
                self._errors.handle(exc, title=failure_title, context={"asset_id": asset_id, "kind": kind})
            return mutation
        except Exception as exc:
            self._rollback(mutation, exc)
            if report_failure:
                self._errors.handle(exc, title=failure_title, context={"asset_id": asset_id, "kind": kind})
            raise
        except BaseException as exc:
            # Cancelled: undo before propagating, nothing to report.
            self._rollback(mutation, exc)
            raise

        self._commit(mutation, response if isinstance(response, AssetRecord) else None)
        self._cache.invalidate_aggregates(invalidates)
        self._publish(kind, [asset_id], collection_id)
        if refresh_active:
            await self._refresh_if_left_mode([asset_id])
        return mutation

    def _apply(self, mutation: PendingMutation) -> None:
        asset_id = mutation.entity_id
        record = self._cache.get(asset_id)
        previous = record.field_values(mutation.patch) if record is not None else {}
        mutation.mark_optimistic(previous)
        self._history.setdefault(asset_id, []).append(mutation)
        if record is None:
            LOGGER.debug("[MUTATION] %s#%d on uncached asset %s", mutation.kind, mutation.sequence, asset_id)
            return

        owners = self._owners.setdefault(asset_id, {})
        for name in mutation.patch:
            owners[name] = mutation.sequence
        self._cache.pin(asset_id, mutation.patch)
        updated = self._cache.write_fields(asset_id, mutation.patch)
        LOGGER.debug("[MUTATION] Applied %s#%d to asset %s", mutation.kind, mutation.sequence, asset_id)

        if updated is not None and not self._engine.snapshot.mode.matches(updated):
            self._selection.discard([asset_id])

    def _commit(self, mutation: PendingMutation, authoritative: Optional[AssetRecord]) -> None:
        asset_id = mutation.entity_id
        mutation.mark_committed()
        owners = self._owners.get(asset_id, {})
        released = [name for name in mutation.patch if owners.get(name) == mutation.sequence]
        for name in released:
            del owners[name]
        self._cache.unpin(asset_id, released)

        current = self._cache.get(asset_id)
        if authoritative is not None and current is not None:
            diverged = {
                name: value
                for name, value in authoritative.field_values(WRITABLE_FIELDS).items()
                if name not in owners and getattr(current, name) != value
            }
            if diverged:
                LOGGER.debug("[MUTATION] Server diverged on %s for asset %s", sorted(diverged), asset_id)
                self._cache.write_fields(asset_id, diverged)
        self._settle(asset_id)

        for key in self._cache.list_keys():
            if key != self._engine.active_key:
                self._cache.invalidate_list(key)
        LOGGER.debug("[MUTATION] Committed %s#%d on asset %s", mutation.kind, mutation.sequence, asset_id)

    def _rollback(self, mutation: PendingMutation, error: BaseException) -> None:
        asset_id = mutation.entity_id
        mutation.mark_rolled_back(error)
        owners = self._owners.get(asset_id, {})
        restore: dict[str, Any] = {}
        for name, value in mutation.previous.items():
            owner = owners.get(name)
            if owner == mutation.sequence:
                restore[name] = value
                del owners[name]
                continue
            if owner is None or owner < mutation.sequence:
                continue
            successor = self._successor(mutation, name)
            if successor is not None and successor.status is MutationStatus.OPTIMISTIC:
                # The newer edit captured this mutation's optimistic value.
                successor.previous[name] = value
        if restore:
            self._cache.unpin(asset_id, restore)
            self._cache.write_fields(asset_id, restore)
        self._settle(asset_id)
        LOGGER.warning(
            "[MUTATION] Rolled back %s#%d on asset %s: %s", mutation.kind, mutation.sequence, asset_id, error
        )

    def _successor(self, mutation: PendingMutation, name: str) -> Optional[PendingMutation]:
        for other in self._history.get(mutation.entity_id, ()):
            if other.sequence > mutation.sequence and name in other.patch:
                return other
        return None

    def _settle(self, asset_id: int) -> None:
        history = self._history.get(asset_id)
        if history is None:
            return
        while history and history[0].status.is_terminal:
            history.pop(0)
        if not history:
            del self._history[asset_id]
            if not self._owners.get(asset_id):
                self._owners.pop(asset_id, None)

    async def _refresh_if_left_mode(self, asset_ids: Sequence[int]) -> None:
        mode = self._engine.snapshot.mode
        loaded = set(self._engine.loaded_ids())
        for asset_id in asset_ids:
            record = self._cache.get(asset_id)
            if asset_id in loaded and record is not None and not mode.matches(record):
                await self._engine.refresh()
                return

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require(self, asset_id: int) -> AssetRecord:
        record = self._cache.get(asset_id)
        if record is None:
            self._reject(f"Asset {asset_id} is not loaded", "unknown_asset")
        return record

    def _validate_name(self, record: AssetRecord, new_name: str) -> str:
        name = (new_name or "").strip()
        if not name:
            self._reject("New name cannot be empty", "empty", "name")
        if any(char in ILLEGAL_FILENAME_CHARS for char in name):
            self._reject("Invalid characters in filename", "illegal_characters", "name")

        _, extension = _split_extension(record.name)
        extension = extension or record.extension
        if extension:
            if name.lower().endswith(extension.lower()):
                name = name[: len(name) - len(extension)] + extension
            else:
                name = name + extension
        if name == record.name:
            self._reject("Name is unchanged", "unchanged", "name")
        return name

    def _reject(self, message: str, reason: str, field: Optional[str] = None) -> None:
        error = ValidationError(message, reason=reason, field=field)
        self.last_validation_error = error
        LOGGER.info("[MUTATION] Rejected edit: %s", message)
        raise error

    def _notify_success(self, title: str, message: str) -> None:
        if self._notifications is not None:
            self._notifications.notify(Notification(NotificationLevel.SUCCESS, title, message))

    def _publish(self, kind: str, asset_ids: Sequence[int], collection_id: Optional[int] = None) -> None:
        if self._events is None:
            return
        self._events.publish(
            AssetsMutatedEvent(
                kind=kind,
                asset_ids=tuple(asset_ids),
                collection_id=collection_id,
                source="mutation-coordinator",
            )
        )
