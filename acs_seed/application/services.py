"""
Application services.
Coordinates domain operations with infrastructure adapters.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import httpx

from ..config import SeedConfig
from ..domain.cards import build_card_collection, unknown_card_type_ids
from ..domain.models import Card, ProvisioningReport
from ..domain.sqlgen import Dialect, GENERATORS, OUTPUT_FILES
from ..exceptions import SeedAutomationError
from ..infrastructure.file_adapter import FileAdapter, create_file_adapter
from ..infrastructure.vendor_client import VendorClient
from ..logger import StructuredLogger, init_logger
from .allocator import UserIdAllocator
from .provisioning import ProvisioningSettings, UserProvisioningPipeline


@dataclass
class SqlReport:
    """Result of a SQL generation command."""
    success: bool
    written: List[Path] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class CardRunReport:
    """Result of the card creation command."""
    cards: List[Card] = field(default_factory=list)
    provisioning: Optional[ProvisioningReport] = None
    warnings: List[str] = field(default_factory=list)


class SqlGenerationService:
    """Writes bulk INSERT scripts for the requested entities."""

    def __init__(self, logger: StructuredLogger, file_adapter: Optional[FileAdapter] = None):
        self.logger = logger
        self.file_adapter = file_adapter or create_file_adapter()

    def generate(self, entities: List[str], count: int, dialect: Dialect, output_dir: Path) -> SqlReport:
        report = SqlReport(success=True)
        for entity in entities:
            generator = GENERATORS[entity]
            sql = generator(count, dialect)
            path = output_dir / OUTPUT_FILES[entity]

            if self.file_adapter.write_text(path, sql):
                report.written.append(path)
                self.logger.info("sql_written", {"entity": entity, "rows": count,
                                                 "dialect": dialect.value, "path": str(path)})
            else:
                report.success = False
                report.errors.append(f"Error writing to file: {path}")
                self.logger.error("sql_write_failed", {"entity": entity, "path": str(path)})
        return report


class CardSeedingService:
    """Logs in, bulk-creates cards and optionally provisions users for them."""

    def __init__(self, config: SeedConfig, logger: StructuredLogger,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.logger = logger
        self.transport = transport

    async def run(self, provision_users: bool = False,
                  settings: Optional[ProvisioningSettings] = None) -> CardRunReport:
        """
        Run the whole card flow.

        Login and bulk-create failures propagate and abort the run. Per-card
        provisioning failures only show up in the report.
        """
        report = CardRunReport()
        unknown = unknown_card_type_ids(self.config.cards_per_type)
        if unknown:
            report.warnings.append(f"Unknown card type ids ignored: {', '.join(unknown)}")
            self.logger.warning("unknown_card_types", {"card_type_ids": unknown})

        cards = build_card_collection(self.config.cards_per_type, self.config.card_id_start)

        async with VendorClient(self.config, transport=self.transport, logger=self.logger) as client:
            await client.acquire_session()
            report.cards = await client.bulk_create_cards(cards)

            if provision_users:
                settings = settings or ProvisioningSettings.from_config(self.config)
                allocator = UserIdAllocator(client.fetch_next_user_id, logger=self.logger)
                pipeline = UserProvisioningPipeline(
                    allocator=allocator,
                    submit_user=client.create_user,
                    blacklist_card=client.blacklist_card,
                    settings=settings,
                    logger=self.logger
                )
                report.provisioning = await pipeline.run(report.cards)
                report.warnings.extend(report.provisioning.warnings)

        return report


class ApplicationCoordinator:
    """
    Coordinates the services behind a simple interface.
    Implements the facade pattern for the CLI.
    """

    def __init__(self, run_id: Optional[str] = None, log_dir: Optional[Path] = None):
        self.logger = init_logger(run_id=run_id, log_dir=log_dir)

    def generate_sql(self, entities: List[str], count: int, dialect: Dialect, output_dir: Path) -> SqlReport:
        """Write INSERT scripts for ``entities``."""
        return SqlGenerationService(self.logger).generate(entities, count, dialect, output_dir)

    def seed_cards(self, config: SeedConfig, provision_users: bool = False,
                   settings: Optional[ProvisioningSettings] = None,
                   transport: Optional[httpx.AsyncBaseTransport] = None) -> CardRunReport:
        """Run the card flow to completion on a fresh event loop."""
        service = CardSeedingService(config, self.logger, transport=transport)
        try:
            report = asyncio.run(service.run(provision_users=provision_users, settings=settings))
        except SeedAutomationError as e:
            self.logger.log_request_failure("card_seeding_failed", e)
            raise

        self.logger.info("card_seeding_complete", {
            "cards": len(report.cards),
            "provisioned": report.provisioning is not None
        })
        return report

    def get_run_id(self) -> str:
        """Get current run ID."""
        return self.logger.run_id

    def get_log_file(self) -> Path:
        """Get current log file path."""
        return self.logger.log_file
