"""Tests for the user provisioning pipeline."""

import asyncio

import pytest

from acs_seed.application.allocator import UserIdAllocator
from acs_seed.application.provisioning import ProvisioningSettings, UserProvisioningPipeline
from acs_seed.config import SeedConfig
from acs_seed.domain.cards import build_card_collection
from acs_seed.domain.models import CardState
from acs_seed.exceptions import AllocationError, BlacklistError, SubmissionError


class FakeVendor:
    """In-memory stand-in for the user, blacklist and next-user-id endpoints."""

    def __init__(self, start_id=1000, fail_submits=None, always_fail_cards=(), fail_blacklist=()):
        self.next_id = start_id
        self.mark_calls = 0
        self.fail_submits = dict(fail_submits or {})
        self.always_fail_cards = set(always_fail_cards)
        self.fail_blacklist = set(fail_blacklist)
        self.submit_calls = []
        self.created = []
        self.blacklist_calls = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def fetch_mark(self):
        self.mark_calls += 1
        await asyncio.sleep(0)
        return self.next_id

    async def submit_user(self, user):
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            self.submit_calls.append(user.card.card_id)
            await asyncio.sleep(0.001)
            if user.card.card_id in self.always_fail_cards:
                raise SubmissionError("rejected", status_code=400, response_body='{"Response":{"code":"1"}}')
            remaining = self.fail_submits.get(user.card.card_id, 0)
            if remaining:
                self.fail_submits[user.card.card_id] = remaining - 1
                raise SubmissionError("temporarily unavailable", status_code=503)
            self.created.append(user)
            return {"Response": {"code": "0"}}
        finally:
            self.in_flight -= 1

    async def blacklist(self, card):
        self.blacklist_calls.append(card.card_id)
        if card.card_id in self.fail_blacklist:
            raise BlacklistError("blacklist rejected", status_code=500)


def make_cards(count):
    return build_card_collection({"0": count})


def make_pipeline(vendor, logger, **settings):
    defaults = dict(concurrency=5, blacklist_count=3, batch_limit=5, max_attempts=10, delay_ms=0)
    defaults.update(settings)
    allocator = UserIdAllocator(vendor.fetch_mark, logger=logger)
    pipeline = UserProvisioningPipeline(
        allocator=allocator,
        submit_user=vendor.submit_user,
        blacklist_card=vendor.blacklist,
        settings=ProvisioningSettings(**defaults),
        logger=logger
    )
    return pipeline, allocator


class TestUserProvisioningPipeline:

    def test_ten_cards_scenario(self, logger):
        vendor = FakeVendor(start_id=1000, fail_submits={"1000102": 2, "1000107": 1})
        cards = make_cards(10)
        pipeline, allocator = make_pipeline(vendor, logger, concurrency=5, blacklist_count=3, batch_limit=5)

        report = asyncio.run(pipeline.run(cards))

        assert len(vendor.created) == 10
        assert len(vendor.submit_calls) == 13  # 10 users plus 3 retries
        assert vendor.peak_in_flight <= 5

        user_ids = [o.user_id for o in report.outcomes]
        assert len(set(user_ids)) == 10
        assert sorted(user_ids) == list(range(1000, 1010))
        assert allocator.refetch_count == 2

        for user in vendor.created:
            outcome = next(o for o in report.outcomes if o.card.card_id == user.card.card_id)
            assert outcome.user_id == user.user_id

        assert vendor.blacklist_calls == [c.card_id for c in cards[:3]]
        assert report.blacklisted == [c.card_id for c in cards[:3]]
        assert all(o.state is CardState.CREATED for o in report.outcomes)

    def test_ids_follow_allocation_order_when_serialised(self, logger):
        vendor = FakeVendor(start_id=1)
        cards = make_cards(6)
        pipeline, _ = make_pipeline(vendor, logger, concurrency=1, blacklist_count=0, batch_limit=2)

        report = asyncio.run(pipeline.run(cards))

        assert [o.user_id for o in report.outcomes] == [1, 2, 3, 4, 5, 6]

    def test_exhausted_card_fails_without_affecting_siblings(self, logger):
        cards = make_cards(4)
        vendor = FakeVendor(always_fail_cards={cards[1].card_id})
        pipeline, _ = make_pipeline(vendor, logger, max_attempts=3, blacklist_count=0)

        report = asyncio.run(pipeline.run(cards))

        assert [o.state for o in report.outcomes] == [
            CardState.CREATED, CardState.FAILED, CardState.CREATED, CardState.CREATED
        ]
        assert vendor.submit_calls.count(cards[1].card_id) == 3
        assert "Gave up after 3 attempt(s)" in report.outcomes[1].error
        assert len(report.created) == 3
        assert len(report.failed) == 1

    def test_allocation_failure_fails_owning_cards_only(self, logger):
        vendor = FakeVendor(start_id=1)
        calls = {"n": 0}

        async def flaky_mark():
            calls["n"] += 1
            if calls["n"] == 2:
                raise AllocationError("next_user_id returned 500", status_code=500)
            return 1

        cards = make_cards(5)
        pipeline = UserProvisioningPipeline(
            allocator=UserIdAllocator(flaky_mark, logger=logger),
            submit_user=vendor.submit_user,
            blacklist_card=vendor.blacklist,
            settings=ProvisioningSettings(concurrency=1, blacklist_count=0, batch_limit=2, delay_ms=0),
            logger=logger
        )

        report = asyncio.run(pipeline.run(cards))

        states = [o.state for o in report.outcomes]
        assert states == [CardState.CREATED, CardState.CREATED, CardState.FAILED,
                          CardState.CREATED, CardState.CREATED]
        assert report.outcomes[2].user_id is None
        assert [o.user_id for o in report.created] == [1, 2, 3, 4]

    def test_blacklist_uses_original_order_regardless_of_outcome(self, logger):
        cards = make_cards(5)
        vendor = FakeVendor(always_fail_cards={cards[0].card_id, cards[2].card_id})
        pipeline, _ = make_pipeline(vendor, logger, max_attempts=1, blacklist_count=3)

        report = asyncio.run(pipeline.run(cards))

        assert vendor.blacklist_calls == [cards[0].card_id, cards[1].card_id, cards[2].card_id]
        assert report.blacklisted == vendor.blacklist_calls

    @pytest.mark.parametrize("blacklist_count,expected", [(0, 0), (2, 2), (4, 4), (10, 4)])
    def test_blacklist_count_is_capped(self, logger, blacklist_count, expected):
        cards = make_cards(4)
        vendor = FakeVendor()
        pipeline, _ = make_pipeline(vendor, logger, blacklist_count=blacklist_count)

        asyncio.run(pipeline.run(cards))

        assert vendor.blacklist_calls == [c.card_id for c in cards[:expected]]

    def test_blacklist_failure_does_not_stop_sweep(self, logger):
        cards = make_cards(4)
        vendor = FakeVendor(fail_blacklist={cards[1].card_id})
        pipeline, _ = make_pipeline(vendor, logger, blacklist_count=3)

        report = asyncio.run(pipeline.run(cards))

        assert vendor.blacklist_calls == [c.card_id for c in cards[:3]]
        assert report.blacklisted == [cards[0].card_id, cards[2].card_id]
        assert list(report.blacklist_failures) == [cards[1].card_id]
        assert report.warnings == [f"1 card(s) could not be blacklisted: {cards[1].card_id}"]

    def test_blacklist_runs_after_all_users_settle(self, logger):
        cards = make_cards(3)
        vendor = FakeVendor()
        order = []
        original_submit, original_blacklist = vendor.submit_user, vendor.blacklist

        async def submit(user):
            result = await original_submit(user)
            order.append("user")
            return result

        async def blacklist(card):
            order.append("blacklist")
            await original_blacklist(card)

        pipeline = UserProvisioningPipeline(
            allocator=UserIdAllocator(vendor.fetch_mark, logger=logger),
            submit_user=submit,
            blacklist_card=blacklist,
            settings=ProvisioningSettings(concurrency=3, blacklist_count=2, delay_ms=0),
            logger=logger
        )

        asyncio.run(pipeline.run(cards))

        assert order == ["user", "user", "user", "blacklist", "blacklist"]

    def test_same_payload_resent_on_retry(self, logger):
        cards = make_cards(1)
        vendor = FakeVendor(fail_submits={cards[0].card_id: 2})
        seen = []
        original_submit = vendor.submit_user

        async def submit(user):
            seen.append(user)
            return await original_submit(user)

        pipeline = UserProvisioningPipeline(
            allocator=UserIdAllocator(vendor.fetch_mark, logger=logger),
            submit_user=submit,
            blacklist_card=vendor.blacklist,
            settings=ProvisioningSettings(blacklist_count=0, delay_ms=0),
            logger=logger
        )

        asyncio.run(pipeline.run(cards))

        assert len(seen) == 3
        assert seen[0] is seen[1] is seen[2]

    def test_empty_card_list(self, logger):
        vendor = FakeVendor()
        pipeline, allocator = make_pipeline(vendor, logger)

        report = asyncio.run(pipeline.run([]))

        assert report.outcomes == []
        assert vendor.blacklist_calls == []
        assert allocator.refetch_count == 0

    def test_settings_from_config(self):
        config = SeedConfig(base_url="https://acs.local", concurrency=7, blacklist_count=1,
                            user_id_batch_size=9, retry_attempts=4, retry_delay_ms=25)

        settings = ProvisioningSettings.from_config(config)

        assert settings == ProvisioningSettings(concurrency=7, blacklist_count=1, batch_limit=9,
                                                max_attempts=4, delay_ms=25)
