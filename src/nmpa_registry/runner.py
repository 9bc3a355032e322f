"""NMPA registry pipeline runner.

Wires the configured sources, mapper, importer and store together and
exposes the pipeline operations both as a Python facade and as a command
line tool. Every operation returns a structured outcome; the CLI maps those
to exit codes.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import RegistryConfig
from .database import RegistrationStore
from .exporter import export_canonical_records_csv, export_source_records_csv
from .importer import BatchImporter
from .logging_config import get_logger, setup_logging
from .mapper import FieldMapper
from .models import BatchOutcome, ClearOutcome, ReimportOutcome, SearchCriteria, SourcePage
from .pagination import PaginationOrchestrator
from .report import ReportRenderer
from .sources.bulk_file import BulkFileSource
from .sources.remote import RemoteRegistrySource
from .statistics import StatisticsReporter, summarize_records


@dataclass
class FetchSummary:
    """Result of a paginated remote fetch."""

    success: bool
    message: str
    total_records: int = 0
    reported_total: int = 0
    max_pages: int = 0
    export_path: Optional[str] = None
    summary: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "total_records": self.total_records,
            "reported_total": self.reported_total,
            "max_pages": self.max_pages,
            "export_path": self.export_path,
            "summary": self.summary,
        }


class RegistryPipeline:
    """Facade over acquisition, import and reporting for one data source."""

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        *,
        store: Optional[RegistrationStore] = None,
        remote: Optional[RemoteRegistrySource] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or RegistryConfig()
        self.store = store or RegistrationStore(self.config.db_path)
        self.remote = remote or RemoteRegistrySource(self.config)
        self.mapper = FieldMapper(self.config)
        self.importer = BatchImporter(self.store, self.mapper)
        self.statistics = StatisticsReporter(
            self.store,
            data_source=self.config.data_source,
            risk_level=self.config.risk_level,
        )
        self.logger = logger or get_logger("runner")

    def fetch_all(
        self,
        criteria: Optional[SearchCriteria] = None,
        *,
        max_pages: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SourcePage:
        orchestrator = PaginationOrchestrator(
            self.remote,
            page_size=self.config.page_size,
            page_delay=self.config.page_delay_seconds,
        )
        return orchestrator.fetch_all(
            criteria,
            max_pages if max_pages is not None else self.config.max_pages,
            cancel_event=cancel_event,
        )

    def fetch(
        self,
        criteria: Optional[SearchCriteria] = None,
        *,
        max_pages: Optional[int] = None,
        export_dir: Optional[Path] = None,
    ) -> FetchSummary:
        pages = max_pages if max_pages is not None else self.config.max_pages
        page = self.fetch_all(criteria, max_pages=pages)
        if not page.records:
            return FetchSummary(success=False, message="no records fetched, check API status", max_pages=pages)

        export_path = None
        if export_dir is not None:
            export_path = str(export_source_records_csv(page.records, export_dir))

        return FetchSummary(
            success=True,
            message=f"fetched {len(page.records)} records",
            total_records=len(page.records),
            reported_total=page.total,
            max_pages=pages,
            export_path=export_path,
            summary=summarize_records(page.records),
        )

    def ingest_remote(
        self,
        criteria: Optional[SearchCriteria] = None,
        *,
        max_pages: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchOutcome:
        """Fetch every page from the remote API and import the result."""
        page = self.fetch_all(criteria, max_pages=max_pages, cancel_event=cancel_event)
        self.logger.info(f"Fetched {len(page.records)} records for import")
        return self.importer.import_records(page.records)

    def import_file(self, path: Optional[Path] = None) -> BatchOutcome:
        return self.importer.convert_and_save(BulkFileSource(path or self.config.data_file))

    def clear(self) -> ClearOutcome:
        return self.importer.clear()

    def reimport_file(self, path: Optional[Path] = None) -> ReimportOutcome:
        return self.importer.reimport_from(BulkFileSource(path or self.config.data_file))

    def export_records(self, output_dir: Path) -> Dict[str, Any]:
        """Write every stored record of this data source to a CSV file."""
        records = self.store.find_by_data_source(self.config.data_source)
        if not records:
            return {
                "success": False,
                "message": f"no {self.config.data_source} records to export",
                "export_path": None,
            }
        path = export_canonical_records_csv(records, output_dir)
        return {
            "success": True,
            "message": f"exported {len(records)} {self.config.data_source} records",
            "export_path": str(path),
        }

    def conversion_statistics(self) -> Dict[str, Any]:
        return self.statistics.conversion_statistics()

    def field_mapping(self) -> Dict[str, str]:
        return self.mapper.field_mapping()

    def test_connection(self) -> Dict[str, Any]:
        connected = self.remote.test_connection()
        return {
            "success": connected,
            "message": "API connection succeeded" if connected else "API connection failed",
            "api_stats": self.remote.api_stats(),
        }


def _criteria_from_args(args: argparse.Namespace) -> SearchCriteria:
    return SearchCriteria(
        product_name=args.product_name,
        manufacturer=args.manufacturer,
        registration_number=args.registration_number,
        category=args.category,
        type=args.type,
        product_state=args.product_state,
        whether_yibao=args.whether_yibao,
    )


SEARCH_FLAGS = (
    "--product-name",
    "--manufacturer",
    "--registration-number",
    "--category",
    "--type",
    "--product-state",
    "--whether-yibao",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="NMPA registry ingestor - fetch, normalize and import device registrations"
    )
    parser.add_argument("--config", type=Path, help="Path to YAML configuration")
    parser.add_argument("--db-path", type=Path, help="Override database path")
    parser.add_argument("--log-file", type=Path, help="Write logs to file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")

    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Fetch registrations from the remote API")
    fetch.add_argument("--export", type=Path, help="Directory for a CSV export of fetched records")
    ingest = commands.add_parser("ingest", help="Fetch from the remote API and import into the store")
    for remote_cmd in (fetch, ingest):
        remote_cmd.add_argument("--max-pages", type=int, help="Page cap (default from config)")
        for flag in SEARCH_FLAGS:
            remote_cmd.add_argument(flag)

    import_cmd = commands.add_parser("import", help="Import a bulk dump into the store")
    import_cmd.add_argument("--file", type=Path, help="Dump file (default from config)")

    commands.add_parser("clear", help="Delete all records of the configured data source")

    reimport = commands.add_parser("reimport", help="Clear, then import a bulk dump")
    reimport.add_argument("--file", type=Path, help="Dump file (default from config)")

    export = commands.add_parser("export", help="Export stored records of the configured data source to CSV")
    export.add_argument("--output-dir", type=Path, default=Path("exports"), help="Directory for the CSV file")

    commands.add_parser("stats", help="Show conversion statistics")
    commands.add_parser("mapping", help="Show the source-to-canonical field mapping")
    commands.add_parser("test-connection", help="Check that the remote API answers")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the registry ingestor."""
    args = build_parser().parse_args(argv)
    logger = setup_logging(
        log_file=args.log_file,
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr if args.json else None,
    )

    try:
        config = RegistryConfig.from_file(args.config)
        if args.db_path:
            config.db_path = args.db_path
        pipeline = RegistryPipeline(config, logger=logger)
        renderer = ReportRenderer()

        if args.command == "fetch":
            result = pipeline.fetch(
                _criteria_from_args(args),
                max_pages=args.max_pages,
                export_dir=args.export,
            )
            payload, text, success = result.to_dict(), result.message + "\n", result.success
        elif args.command == "ingest":
            outcome = pipeline.ingest_remote(_criteria_from_args(args), max_pages=args.max_pages)
            payload, text, success = outcome.to_dict(), renderer.render_batch(outcome), outcome.success
        elif args.command == "import":
            outcome = pipeline.import_file(args.file)
            payload, text, success = outcome.to_dict(), renderer.render_batch(outcome), outcome.success
        elif args.command == "clear":
            cleared = pipeline.clear()
            payload, text, success = cleared.to_dict(), renderer.render_clear(cleared), cleared.success
        elif args.command == "reimport":
            reimported = pipeline.reimport_file(args.file)
            payload, text, success = reimported.to_dict(), renderer.render_reimport(reimported), reimported.success
        elif args.command == "export":
            exported = pipeline.export_records(args.output_dir)
            payload, text, success = exported, exported["message"] + "\n", exported["success"]
        elif args.command == "stats":
            stats = pipeline.conversion_statistics()
            payload, text, success = stats, renderer.render_statistics(stats), "error" not in stats
        elif args.command == "mapping":
            mapping = pipeline.field_mapping()
            payload, text, success = mapping, renderer.render_field_mapping(mapping), True
        else:
            status = pipeline.test_connection()
            payload, text, success = status, status["message"] + "\n", status["success"]

        if args.json:
            print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
        else:
            print(text, end="")
        return 0 if success else 1

    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
