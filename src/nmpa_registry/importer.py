"""Deduplicating batch import of NMPA registrations into the store."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from typing import Callable, List, Optional, Sequence, Set

from .database import RegistrationStore
from .logging_config import get_logger
from .mapper import FieldMapper
from .models import BatchOutcome, CanonicalRecord, ClearOutcome, ReimportOutcome, SourceRecord
from .sources.bulk_file import BulkFileSource

logger = get_logger("importer")


class BatchImporter:
    """Convert source records and insert the ones whose key is new.

    Records are skipped, never fatal, when the registration number is blank,
    already stored, repeated earlier in the same batch, fails to convert, or
    loses an insert race to a concurrent import. Accepted records go to the
    store in a single transaction.
    """

    def __init__(self, store: RegistrationStore, mapper: Optional[FieldMapper] = None) -> None:
        self.store = store
        self.mapper = mapper or FieldMapper()

    @property
    def data_source(self) -> str:
        return self.mapper.data_source

    def import_records(self, records: Sequence[SourceRecord]) -> BatchOutcome:
        if not records:
            return BatchOutcome(success=False, message="no data to convert, check the data file")

        logger.info(f"Converting {len(records)} registry records")
        candidates: List[CanonicalRecord] = []
        skipped_reasons: List[str] = []
        batch_keys: Set[str] = set()

        try:
            for record in records:
                key = (record.registration_number or "").strip()
                if not key:
                    skipped_reasons.append(f"missing key: {record.product_name}")
                    continue

                if key in batch_keys or self.store.find_by_key(key):
                    logger.debug(f"Skipping existing registration number: {key}")
                    skipped_reasons.append(f"duplicate: {key}")
                    continue

                if key != record.registration_number:
                    record = replace(record, registration_number=key)

                try:
                    canonical = self.mapper.to_canonical(record)
                except Exception as exc:
                    logger.error(f"Failed to convert {record.product_name}: {exc}")
                    skipped_reasons.append(f"conversion failed: {record.product_name} - {exc}")
                    continue

                if canonical is not None:
                    batch_keys.add(key)
                    candidates.append(canonical)

            logger.info(f"Conversion finished: {len(candidates)} converted, {len(skipped_reasons)} skipped")

            if not candidates:
                return BatchOutcome(
                    success=False,
                    message="no valid records to save",
                    total_parsed=len(records),
                    skipped=len(skipped_reasons),
                    skipped_reasons=skipped_reasons,
                )

            result = self.store.save_all(candidates)
        except sqlite3.Error as exc:
            logger.exception(f"Import failed: {exc}")
            return BatchOutcome(
                success=False,
                message=f"import failed: {exc}",
                total_parsed=len(records),
                skipped=len(skipped_reasons),
                skipped_reasons=skipped_reasons,
            )

        skipped_reasons.extend(f"conflict: {key}" for key in result.conflicts)
        saved = result.saved
        logger.info(f"Saved {len(saved)} records to the store")

        return BatchOutcome(
            success=True,
            message=f"converted and saved {len(saved)} {self.data_source} records",
            total_parsed=len(records),
            converted=len(candidates),
            skipped=len(skipped_reasons),
            saved=len(saved),
            skipped_reasons=skipped_reasons,
            saved_ids=[record.id for record in saved if record.id is not None],
            sample_record=saved[0].sample_info() if saved else None,
        )

    def convert_and_save(self, source: BulkFileSource) -> BatchOutcome:
        """Load a bulk dump and import it."""
        page = source.load()
        if not page.ok:
            return BatchOutcome(success=False, message=f"no data to convert: {page.error_message}")
        return self.import_records(page.records)

    def clear(self) -> ClearOutcome:
        """Delete every record of this data source in one transaction."""
        logger.info(f"Clearing all {self.data_source} records")
        try:
            deleted = self.store.delete_by_data_source(self.data_source)
        except sqlite3.Error as exc:
            logger.exception(f"Clear failed: {exc}")
            return ClearOutcome(success=False, message=f"clear failed: {exc}")

        if not deleted:
            return ClearOutcome(success=True, message=f"no {self.data_source} records to clear")
        logger.info(f"Deleted {deleted} {self.data_source} records")
        return ClearOutcome(
            success=True,
            message=f"cleared {deleted} {self.data_source} records",
            deleted_count=deleted,
        )

    def reimport(self, records: Sequence[SourceRecord]) -> ReimportOutcome:
        """Clear, then import. The clear is committed before the import starts
        and is not undone when the import fails."""
        return self._clear_then(lambda: self.import_records(records))

    def reimport_from(self, source: BulkFileSource) -> ReimportOutcome:
        """Clear, then load and import a bulk dump; load errors are reported in the outcome."""
        return self._clear_then(lambda: self.convert_and_save(source))

    def _clear_then(self, run_import: Callable[[], BatchOutcome]) -> ReimportOutcome:
        logger.info(f"Reimporting {self.data_source} records")
        cleared = self.clear()
        if not cleared.success:
            return ReimportOutcome(success=False, message=cleared.message, clear=cleared)

        batch = run_import()
        if not batch.success:
            return ReimportOutcome(
                success=False,
                message=f"import after clear failed: {batch.message}",
                deleted_count=cleared.deleted_count,
                clear=cleared,
                batch=batch,
            )

        return ReimportOutcome(
            success=True,
            message=f"reimport finished: deleted {cleared.deleted_count}, imported {batch.saved}",
            deleted_count=cleared.deleted_count,
            imported_count=batch.saved,
            clear=cleared,
            batch=batch,
        )
