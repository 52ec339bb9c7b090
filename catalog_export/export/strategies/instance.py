from __future__ import annotations

import json
import logging

from catalog_export.export.converter import RecordConverter
from catalog_export.export.fields import (
    SupplementaryFieldProvider,
    TransformationFieldProvider,
)
from catalog_export.export.strategy import (
    ExportContext,
    ExportStrategy,
    register_export_strategy,
)
from catalog_export.export.types import DuplicateIdentifiers, Err, GeneratedResult, Ok
from catalog_export.models import ErrorCode, InventoryRecord, RecordCategory
from catalog_export.store.base import Store

logger = logging.getLogger(__name__)


@register_export_strategy(RecordCategory.INSTANCE)
class InstanceExportStrategy(ExportStrategy):
    """Bibliographic records.

    Instances without a source record are rendered from their inventory
    data; with the deletion profile the generated record is a tombstone.
    Inventory lookups are cached for the current window only.
    """

    category = RecordCategory.INSTANCE
    field_provider: SupplementaryFieldProvider = TransformationFieldProvider()

    def __init__(self, store: Store, converter: RecordConverter | None = None) -> None:
        super().__init__(store, converter)
        self._inventory: dict[str, InventoryRecord | None] = {}

    async def synthesize(
        self, external_ids: list[str], context: ExportContext
    ) -> GeneratedResult:
        inventory = await self._inventory_for(external_ids, context)
        result = GeneratedResult()
        for external_id in external_ids:
            instance = inventory.get(external_id)
            if instance is None:
                result.add_not_found(external_id)
                continue
            content = self._generated_content(instance, context.is_deletion_profile)
            match self.converter.convert(content, {}, context.mapping_profile):
                case Ok(value=data):
                    result.add_generated(external_id, data)
                case Err(error=error):
                    logger.error(
                        "[%s] Cannot generate record for %s: %s",
                        context.job.id,
                        external_id,
                        error.message,
                    )
                    await context.reporter.report(ErrorCode.CONVERSION_ERROR, external_id)
                    result.add_failed(external_id)
        logger.info(
            "[%s] Generated %d instance records, %d not found",
            context.job.id,
            len(result.records),
            len(result.not_found_ids),
        )
        return result

    async def identify_duplicate_group(
        self, external_id: str, context: ExportContext
    ) -> DuplicateIdentifiers | None:
        inventory = await self._inventory_for([external_id], context)
        instance = inventory.get(external_id)
        if instance is None:
            return None
        return DuplicateIdentifiers(external_id=external_id, hrid=instance.hrid)

    def release_window(self) -> None:
        self._inventory.clear()

    async def _inventory_for(
        self, external_ids: list[str], context: ExportContext
    ) -> dict[str, InventoryRecord | None]:
        missing = [i for i in external_ids if i not in self._inventory]
        if missing:
            found = await self._store.find_inventory(context.job.tenant_id, missing)
            for external_id in missing:
                self._inventory[external_id] = found.get(external_id)
        return {i: self._inventory[i] for i in external_ids}

    @staticmethod
    def _generated_content(instance: InventoryRecord, deleted: bool) -> str:
        content: dict[str, object] = {
            "id": instance.external_id,
            "hrid": instance.hrid,
            "title": instance.title,
            "source": "inventory",
        }
        if deleted:
            content["deleted"] = True
        return json.dumps(content)
