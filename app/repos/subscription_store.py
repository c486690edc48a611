import asyncio
import json
import os
import uuid
from pathlib import Path
from typing import Callable

import aiofiles
import aiofiles.os
from loguru import logger
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from app.core.exceptions.domain import PersistenceError, ValidationError
from app.core.utils import utc_now
from app.schemas import SubscriptionDefaults, SubscriptionPatch, SubscriptionRecord

# Fields a patch may overwrite; originalTransactionId and createdAt never change
MERGEABLE_FIELDS = (
    "transaction_id",
    "latest_transaction_id",
    "product_id",
    "purchase_date",
    "expiration_date",
    "environment",
    "platform",
    "status",
    "last_notification_type",
)

SubscriptionResolver = Callable[
    [SubscriptionRecord | None],
    tuple[SubscriptionPatch, SubscriptionDefaults | None],
]

_records_adapter = TypeAdapter(list[SubscriptionRecord])


def merge_record(
    existing: SubscriptionRecord,
    patch: SubscriptionPatch,
    now,
) -> SubscriptionRecord:
    """
    Apply a patch over a stored record, field by field.

    Patch fields that are None are absent and keep the stored value.
    updatedAt never moves backwards, even if the clock does.

    Args:
        existing: The stored record
        patch: The partial update
        now: Current UTC time

    Returns:
        SubscriptionRecord: The merged record
    """
    updates = {}

    for name in MERGEABLE_FIELDS:
        value = getattr(patch, name)
        if value is not None:
            updates[name] = value

    updates["updated_at"] = max(now, existing.updated_at)

    return existing.model_copy(update=updates)


def create_record(
    patch: SubscriptionPatch,
    defaults: SubscriptionDefaults | None,
    now,
) -> SubscriptionRecord:
    """
    Build a new record from a patch, filling unset enums from defaults.

    Raises:
        ValidationError: If the patch and defaults do not make a complete record
    """
    values = patch.model_dump(exclude_none=True)

    if defaults is not None:
        for name, value in defaults.model_dump(exclude_none=True).items():
            values.setdefault(name, value)

    try:
        return SubscriptionRecord(**values, created_at=now, updated_at=now)
    except PydanticValidationError as err:
        missing = ", ".join(str(error["loc"][0]) for error in err.errors())
        raise ValidationError(
            f"Cannot create subscription {patch.original_transaction_id}: missing or invalid {missing}",
            err,
        ) from err


class SubscriptionStore:
    """
    Subscription records persisted as a single JSON document.

    Every mutation reads the whole document, merges one record and rewrites
    the document through a staging file that atomically replaces the old one.
    Mutations are serialized by a per-process lock; reads are lock-free
    snapshots of the last committed document.

    Example:
        >>> store = SubscriptionStore(Path("subscriptions.json"))
        >>> await store.upsert(SubscriptionPatch(original_transaction_id="1000", status="EXPIRED"))
    """

    def __init__(self, path: Path | str):
        """
        Args:
            path: Location of the JSON document; it need not exist yet
        """
        self.path = Path(path)
        self._write_lock = asyncio.Lock()

    async def _load(self) -> tuple[list[SubscriptionRecord], bool]:
        """
        Read the whole document.

        Returns:
            tuple: The records and whether the document was intact. A missing
            or empty file is intact; an unreadable or invalid one is not and
            reads as empty.
        """
        if not await aiofiles.os.path.exists(self.path):
            return [], True

        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as file:
                content = await file.read()
        except (OSError, UnicodeDecodeError):
            logger.exception(f"Subscription store {self.path} is unreadable, serving it as empty")
            return [], False

        if not content.strip():
            return [], True

        try:
            records = _records_adapter.validate_json(content)
        except PydanticValidationError as err:
            logger.error(
                f"Subscription store {self.path} is corrupt, serving it as empty: "
                f"{err.error_count()} error(s), first: {err.errors()[0]['msg']}"
            )
            return [], False

        return records, True

    async def _preserve_corrupt_document(self) -> None:
        """
        Move a corrupt document aside before it gets replaced.

        Raises:
            PersistenceError: If it cannot be moved, so nothing overwrites it
        """
        if not await aiofiles.os.path.exists(self.path):
            return

        backup = self.path.with_name(f"{self.path.name}.corrupt-{utc_now():%Y%m%dT%H%M%S%f}")

        try:
            await aiofiles.os.rename(self.path, backup)
        except OSError as err:
            logger.exception(f"Failed to move corrupt subscription store to {backup}")
            raise PersistenceError(
                "Subscription store is corrupt and could not be preserved", err
            ) from err

        logger.warning(f"Corrupt subscription store preserved as {backup}")

    async def _write(self, records: list[SubscriptionRecord]) -> None:
        """
        Commit the whole document: write a staging file, then replace.

        Raises:
            PersistenceError: If any step fails; the previous document is untouched
        """
        content = json.dumps(
            [record.model_dump(mode="json", by_alias=True) for record in records],
            indent=2,
        )
        staging = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex}.tmp")

        try:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)

            async with aiofiles.open(staging, "w", encoding="utf-8") as file:
                await file.write(content)
                await file.flush()
                await asyncio.to_thread(os.fsync, file.fileno())

            await aiofiles.os.replace(staging, self.path)
        except OSError as err:
            logger.exception(f"Failed to write subscription store {self.path}")

            if await aiofiles.os.path.exists(staging):
                try:
                    await aiofiles.os.remove(staging)
                except OSError:
                    logger.warning(f"Could not remove staging file {staging}")

            raise PersistenceError(f"Failed to write subscription store: {err}", err) from err

    async def reconcile(
        self,
        original_transaction_id: str,
        resolve: SubscriptionResolver,
    ) -> SubscriptionRecord:
        """
        Insert or merge one record inside the write critical section.

        `resolve` receives the stored record (or None) and returns the patch
        and creation defaults to apply, so decisions that depend on whether
        the lineage exists are made against the state being written.

        Args:
            original_transaction_id: Lineage key
            resolve: Builds (patch, defaults) from the current record

        Returns:
            SubscriptionRecord: The record as persisted

        Raises:
            ValidationError: If the patch targets another key or cannot create a record
            PersistenceError: If the document cannot be written
        """
        async with self._write_lock:
            records, intact = await self._load()

            index = next(
                (
                    position
                    for position, record in enumerate(records)
                    if record.original_transaction_id == original_transaction_id
                ),
                None,
            )
            existing = records[index] if index is not None else None

            patch, defaults = resolve(existing)

            if patch.original_transaction_id != original_transaction_id:
                raise ValidationError(
                    f"Patch for {patch.original_transaction_id} applied to {original_transaction_id}"
                )

            now = utc_now()

            if existing is None:
                record = create_record(patch, defaults, now)
                records.append(record)
            else:
                record = merge_record(existing, patch, now)
                records[index] = record

            if not intact:
                await self._preserve_corrupt_document()

            await self._write(records)

        logger.info(
            f"Subscription {'created' if existing is None else 'updated'}: "
            f"{original_transaction_id} ({record.platform.value}, {record.status.value})"
        )

        return record

    async def upsert(
        self,
        patch: SubscriptionPatch,
        defaults: SubscriptionDefaults | None = None,
    ) -> SubscriptionRecord:
        """
        Merge a patch into the record with the same original transaction id,
        creating it when absent.

        Args:
            patch: Partial record; None fields preserve stored values
            defaults: Enum values used only when creating

        Returns:
            SubscriptionRecord: The record as persisted
        """
        return await self.reconcile(
            patch.original_transaction_id,
            lambda existing: (patch, defaults),
        )

    async def get(self, original_transaction_id: str) -> SubscriptionRecord | None:
        records, _ = await self._load()

        return next(
            (record for record in records if record.original_transaction_id == original_transaction_id),
            None,
        )

    async def list(self) -> list[SubscriptionRecord]:
        """Snapshot of all records, in document order"""
        records, _ = await self._load()

        return records
