import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import BULK_MAX_RECORDS, PROPERTY_CHUNK_SIZE, PROPERTY_TRANSFORM_CONCURRENCY
from app.core.exceptions import BatchValidationError, IntakeError, UnknownEntityError
from app.core.security import CurrentUser
from app.models import User, Developer, Governorate, City, Area, Property, Lead, Launch
from app.schemas.bulk_upload import BulkSummary, BulkUploadResponse, ImageWarning
from app.services.bulk_validation import VALIDATORS, ValidationReport
from app.services.image_resolver import ImageResolver
from app.services.record_transform import TRANSFORMERS, TransformContext
from app.services.reference_resolver import ReferenceResolver, ResolutionCache
from app.utils.concurrency import chunked, gather_bounded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityConfig:
    model: Any
    kind: str                        # singular name used by the resolver
    validate: Callable[..., Awaitable[ValidationReport]]
    transform: Callable[..., Awaitable[Tuple[Dict[str, Any], List[ImageWarning]]]]
    resolves_references: bool = False
    auto_create_default: bool = False
    fresh_cache: bool = False
    chunk_inserts: bool = False


ENTITY_CONFIGS: Dict[str, EntityConfig] = {
    "users": EntityConfig(User, "user", VALIDATORS["users"], TRANSFORMERS["users"]),
    "developers": EntityConfig(Developer, "developer", VALIDATORS["developers"], TRANSFORMERS["developers"]),
    "governorates": EntityConfig(Governorate, "governorate", VALIDATORS["governorates"], TRANSFORMERS["governorates"]),
    "cities": EntityConfig(
        City, "city", VALIDATORS["cities"], TRANSFORMERS["cities"],
        resolves_references=True,
    ),
    "areas": EntityConfig(
        Area, "area", VALIDATORS["areas"], TRANSFORMERS["areas"],
        resolves_references=True,
    ),
    "properties": EntityConfig(
        Property, "property", VALIDATORS["properties"], TRANSFORMERS["properties"],
        resolves_references=True, auto_create_default=True, fresh_cache=True, chunk_inserts=True,
    ),
    "leads": EntityConfig(
        Lead, "lead", VALIDATORS["leads"], TRANSFORMERS["leads"],
        resolves_references=True,
    ),
    "launches": EntityConfig(
        Launch, "launch", VALIDATORS["launches"], TRANSFORMERS["launches"],
        resolves_references=True, fresh_cache=True,
    ),
}

SUPPORTED_ENTITIES = tuple(ENTITY_CONFIGS)

# Non-chunked kinds still transform concurrently (password hashing, logo lookups)
DEFAULT_TRANSFORM_CONCURRENCY = 10


def get_entity_config(entity: str) -> EntityConfig:
    config = ENTITY_CONFIGS.get(entity)
    if config is None:
        raise UnknownEntityError(
            f"Unknown entity type: {entity}. Supported: {', '.join(SUPPORTED_ENTITIES)}",
            payload={"summary": BulkSummary(total=0).model_dump(exclude_none=True)},
        )
    return config


def _record_label(record: Dict[str, Any]) -> str:
    for key in ("title", "name", "email"):
        if record.get(key):
            return str(record[key])
    return "unnamed record"


class BulkImportService:
    """
    Runs one bulk upload end to end:
    intake guard -> resolve -> validate -> short-circuit -> transform -> insert -> summary.

    The resolution cache belongs to this instance, i.e. to one request.
    """

    def __init__(
        self,
        db: AsyncSession,
        image_resolver: ImageResolver,
        cache: Optional[ResolutionCache] = None,
        max_records: int = BULK_MAX_RECORDS,
        chunk_size: int = PROPERTY_CHUNK_SIZE,
        concurrency: int = PROPERTY_TRANSFORM_CONCURRENCY,
    ):
        self.db = db
        self.image_resolver = image_resolver
        self.cache = cache if cache is not None else ResolutionCache()
        self.resolver = ReferenceResolver(db, self.cache)
        self.max_records = max_records
        self.chunk_size = chunk_size
        self.concurrency = concurrency

    async def import_batch(
        self,
        entity: str,
        records: Any,
        current_user: CurrentUser,
        auto_create: Optional[bool] = None,
    ) -> BulkUploadResponse:
        """
        Import a batch of raw records of one entity kind.

        Workflow:
        1. Reject bodies that are not a non-empty list of objects within the size limit.
        2. Resolve references record by record (cities, areas, properties, leads, launches).
        3. Validate; any field error rejects the whole batch.
        4. Return early when every record is a duplicate.
        5. Transform survivors (properties in sequential chunks, concurrent within a chunk).
        6. Flush each chunk and commit once at the end.
        7. Summarize: total = imported + skipped + failed.

        Raises:
            UnknownEntityError: entity is not supported.
            IntakeError: malformed, empty or oversized body.
            BatchValidationError: at least one record failed field validation.
        """
        started = time.perf_counter()
        config = get_entity_config(entity)

        # 1. --- Intake guard ---
        self._check_intake(records)
        total = len(records)
        logger.info(f"Bulk upload started: {total} {entity} by user {current_user.id}")

        # 2. --- Reference resolution ---
        effective_auto_create = config.auto_create_default if auto_create is None else auto_create
        resolved: List[Dict[str, Any]] = [{} for _ in records]
        if config.resolves_references:
            if config.fresh_cache:
                self.cache.clear()
            for index, record in enumerate(records):
                resolved[index] = await self.resolver.resolve_record(record, config.kind, effective_auto_create)

        # 3. --- Validation ---
        report = await config.validate(self.db, records, resolved, effective_auto_create)
        if report.errors:
            skipped = len(report.skipped)
            logger.warning(f"Bulk upload of {entity} rejected: {len(report.errors)} invalid records")
            response = BulkUploadResponse(
                success=False,
                message="Validation failed",
                summary=BulkSummary(
                    total=total,
                    imported=0,
                    skipped=skipped,
                    failed=total - skipped,
                    validated=total - skipped - len(report.errors),
                ),
                errors=report.errors,
                skipped=report.skipped,
            )
            raise BatchValidationError("Validation failed", payload=response.model_dump(by_alias=True, exclude_none=True, mode="json"))

        # 4. --- Nothing left to insert ---
        skipped_indices = report.skipped_indices
        if len(skipped_indices) == total:
            return BulkUploadResponse(
                success=True,
                message=f"All {total} {entity} already exist, nothing imported",
                summary=BulkSummary(total=total, imported=0, skipped=total, failed=0),
                skipped_records=report.skipped,
            )

        survivors = [
            (record, resolved[index])
            for index, record in enumerate(records)
            if index not in skipped_indices
        ]

        # 5-6. --- Transform + insert ---
        context = TransformContext(images=self.image_resolver, current_user=current_user)
        imported, failed, warnings = await self._transform_and_insert(config, survivors, context)

        elapsed = time.perf_counter() - started
        logger.info(
            f"Bulk upload of {entity} finished in {elapsed:.2f}s: "
            f"{imported} imported, {len(skipped_indices)} skipped, {failed} failed"
        )

        # 7. --- Summary ---
        message = f"Successfully imported {imported} {entity}"
        if skipped_indices:
            message += f", skipped {len(skipped_indices)} duplicates"
        if failed:
            message += f", {failed} failed during processing"

        return BulkUploadResponse(
            success=True,
            message=message,
            summary=BulkSummary(total=total, imported=imported, skipped=len(skipped_indices), failed=failed),
            skipped_records=report.skipped,
            image_warnings=warnings,
        )

    def _check_intake(self, records: Any) -> None:
        def reject(message: str, total: int = 0):
            summary = BulkSummary(total=total, failed=total)
            raise IntakeError(message, payload={"summary": summary.model_dump(exclude_none=True)})

        if not isinstance(records, list):
            reject("Request body must be a JSON array of records")
        if not records:
            reject("No records provided")
        if len(records) > self.max_records:
            reject(f"Too many records. Maximum {self.max_records} records per upload", len(records))
        bad = [index for index, record in enumerate(records) if not isinstance(record, dict)]
        if bad:
            reject(f"Every record must be a JSON object (invalid at index {bad[0]})", len(records))

    async def _transform_and_insert(
        self,
        config: EntityConfig,
        survivors: Sequence[Tuple[Dict[str, Any], Dict[str, Any]]],
        context: TransformContext,
    ) -> Tuple[int, int, List[ImageWarning]]:
        warnings: List[ImageWarning] = []
        imported = 0
        failed = 0

        async def transform(item):
            record, refs = item
            return await config.transform(record, refs, context)

        if config.chunk_inserts:
            chunks = list(chunked(survivors, self.chunk_size))
            limit = self.concurrency
        else:
            chunks = [survivors]
            limit = DEFAULT_TRANSFORM_CONCURRENCY

        try:
            for number, chunk in enumerate(chunks, start=1):
                results = await gather_bounded(chunk, transform, limit)

                rows = []
                for (record, _), result in zip(chunk, results):
                    if isinstance(result, Exception):
                        logger.error(f"Failed to prepare {config.kind} '{_record_label(record)}': {result}")
                        warnings.append(ImageWarning(
                            record=_record_label(record),
                            field="processing",
                            reason=str(result) or result.__class__.__name__,
                        ))
                        failed += 1
                        continue
                    row, record_warnings = result
                    warnings.extend(record_warnings)
                    rows.append(config.model(**row))

                if rows:
                    self.db.add_all(rows)
                    await self.db.flush()
                imported += len(rows)

                if config.chunk_inserts:
                    logger.info(f"Processed {config.kind} chunk {number}/{len(chunks)} ({len(rows)} rows)")

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return imported, failed, warnings
