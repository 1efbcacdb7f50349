"""
User provisioning pipeline.

For every created card: allocate a user id, build a user, submit it with
retries through the bounded work queue. Once every card has settled, the
first ``blacklist_count`` cards of the original list are blacklisted one by
one on a best-effort basis.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from ..config import SeedConfig
from ..domain.models import Card, CardOutcome, CardState, ProvisioningReport, UserRecord
from ..domain.users import build_user
from ..exceptions import SeedAutomationError
from ..logger import StructuredLogger, get_logger
from .allocator import UserIdAllocator
from .retry import retry, DEFAULT_MAX_ATTEMPTS, DEFAULT_DELAY_MS
from .work_queue import BoundedWorkQueue


@dataclass
class ProvisioningSettings:
    """Knobs of one provisioning run."""
    concurrency: int = 5
    blacklist_count: int = 3
    batch_limit: int = 5
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay_ms: int = DEFAULT_DELAY_MS

    @classmethod
    def from_config(cls, config: SeedConfig) -> 'ProvisioningSettings':
        return cls(
            concurrency=config.concurrency,
            blacklist_count=config.blacklist_count,
            batch_limit=config.user_id_batch_size,
            max_attempts=config.retry_attempts,
            delay_ms=config.retry_delay_ms
        )


class UserProvisioningPipeline:
    """Provisions one user per card and blacklists a prefix of the cards."""

    def __init__(self, allocator: UserIdAllocator,
                 submit_user: Callable[[UserRecord], Awaitable[object]],
                 blacklist_card: Callable[[Card], Awaitable[None]],
                 settings: Optional[ProvisioningSettings] = None,
                 logger: Optional[StructuredLogger] = None,
                 user_factory: Callable[[int, Card], UserRecord] = build_user):
        self.allocator = allocator
        self.submit_user = submit_user
        self.blacklist_card = blacklist_card
        self.settings = settings or ProvisioningSettings()
        self.logger = logger or get_logger()
        self.user_factory = user_factory

    async def run(self, cards: List[Card]) -> ProvisioningReport:
        """Provision users for ``cards`` and return the per-card report."""
        report = ProvisioningReport(outcomes=[CardOutcome(card=card) for card in cards])

        queue = BoundedWorkQueue(self.settings.concurrency)
        factories = [self._task_for(outcome) for outcome in report.outcomes]
        results = await queue.run_settled(factories)

        for task in results:
            if not task.ok:
                outcome = report.outcomes[task.index]
                if outcome.state is not CardState.FAILED:
                    outcome.mark_failed(task.error)  # type: ignore[arg-type]

        await self._blacklist_prefix(cards, report)

        self.logger.log_provisioning_summary(
            total_cards=len(cards),
            created=len(report.created),
            failed=len(report.failed),
            blacklisted=len(report.blacklisted),
            blacklist_failures=len(report.blacklist_failures)
        )
        for warning in report.warnings:
            self.logger.warning("provisioning_warning", {"message": warning})
        return report

    def _task_for(self, outcome: CardOutcome) -> Callable[[], Awaitable[UserRecord]]:
        async def task() -> UserRecord:
            return await self._provision(outcome)
        return task

    async def _provision(self, outcome: CardOutcome) -> UserRecord:
        card = outcome.card
        try:
            user_id = await self.allocator.next(self.settings.batch_limit)
        except SeedAutomationError as e:
            outcome.mark_failed(e)
            self.logger.log_request_failure("user_id_allocation_failed", e, card_id=card.card_id)
            raise

        outcome.user_id = user_id
        outcome.state = CardState.ID_ALLOCATED
        user = self.user_factory(user_id, card)

        outcome.state = CardState.SUBMITTING
        try:
            await retry(
                lambda: self.submit_user(user),
                max_attempts=self.settings.max_attempts,
                delay_ms=self.settings.delay_ms,
                logger=self.logger,
                label=f"create_user:{user_id}"
            )
        except SeedAutomationError as e:
            outcome.mark_failed(e)
            self.logger.log_request_failure("user_create_failed", e, card_id=card.card_id, user_id=user_id)
            raise

        outcome.state = CardState.CREATED
        self.logger.info("user_created", {"user_id": user_id, "card_id": card.card_id})
        return user

    async def _blacklist_prefix(self, cards: List[Card], report: ProvisioningReport) -> None:
        for card in cards[:self.settings.blacklist_count]:
            try:
                await self.blacklist_card(card)
            except Exception as e:
                report.blacklist_failures[card.card_id] = str(e)
                self.logger.log_request_failure("card_blacklist_failed", e, card_id=card.card_id)
                continue
            report.blacklisted.append(card.card_id)
            self.logger.info("card_blacklisted", {"card_id": card.card_id})
