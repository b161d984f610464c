import asyncio

import pytest

from conftest import FakeEnrichment, InMemoryStore
from fixture_bot.sync.team_resolver import TeamResolver


class TestResolveTeam:
    def test_creates_with_enrichment_logo_and_short_name(self, store):
        enrichment = FakeEnrichment({"Arsenal": "https://logo/arsenal.png"})
        team = asyncio.run(TeamResolver(store, enrichment).resolve_team("Arsenal"))
        assert team.name == "Arsenal"
        assert team.logo == "https://logo/arsenal.png"
        assert team.short_name == "ARS"

    def test_enrichment_failure_falls_back_to_hint(self, store):
        resolver = TeamResolver(store, FakeEnrichment(fail=True))
        team = asyncio.run(resolver.resolve_team("Beşiktaş", logo_hint="https://feed/bjk.png"))
        assert team.logo == "https://feed/bjk.png"
        assert team.short_name == "BEŞ"

    def test_no_logo_anywhere(self, store):
        team = asyncio.run(TeamResolver(store, FakeEnrichment()).resolve_team("Göztepe"))
        assert team.logo == ""
        assert store.team_writes == 1

    def test_existing_team_with_logo_is_reused(self, store):
        existing = store.add_team("Chelsea", logo="https://logo/che.png", short_name="CHE")
        enrichment = FakeEnrichment()
        team = asyncio.run(TeamResolver(store, enrichment).resolve_team("Chelsea"))
        assert team == existing
        assert enrichment.calls == []
        assert store.team_writes == 0

    def test_empty_logo_is_backfilled_once_per_process(self, store):
        store.add_team("Spurs", short_name="SPU")
        enrichment = FakeEnrichment()
        resolver = TeamResolver(store, enrichment)

        async def scenario():
            first = await resolver.resolve_team("Spurs")
            enrichment.logos["Spurs"] = "https://logo/spurs.png"
            second = await resolver.resolve_team("Spurs")
            return first, second

        first, second = asyncio.run(scenario())
        assert first.logo == "" and second.logo == ""
        assert enrichment.calls == ["Spurs"]

    def test_backfill_keeps_id_and_short_name(self, store):
        existing = store.add_team("Spurs", short_name="TOT")
        resolver = TeamResolver(store, FakeEnrichment({"Spurs": "https://logo/spurs.png"}))
        team = asyncio.run(resolver.resolve_team("Spurs"))
        assert team.id == existing.id
        assert team.logo == "https://logo/spurs.png"
        assert team.short_name == "TOT"

    def test_concurrent_resolution_collapses(self):
        store = InMemoryStore()
        enrichment = FakeEnrichment({"Arsenal": "https://logo/arsenal.png"})
        resolver = TeamResolver(store, enrichment)

        async def scenario():
            return await asyncio.gather(
                *(resolver.resolve_team(name) for name in ["Arsenal"] * 4 + ["arsenal"])
            )

        teams = asyncio.run(scenario())
        assert {team.id for team in teams} == {teams[0].id}
        assert store.team_lookups == 1
        assert store.team_writes == 1
        assert enrichment.calls == ["Arsenal"]

    def test_empty_name_rejected(self, store):
        with pytest.raises(ValueError):
            asyncio.run(TeamResolver(store).resolve_team("  "))
