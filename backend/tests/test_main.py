"""Tests for the standings service entry point."""

import asyncio
import signal

import main as service_main
from conftest import FakeFPLClient
from fpl_api.client import FPLAPIError
from standings.aggregator import aggregate_standings
from standings.live_refresher import LiveRefresher


class FlakyBootstrapClient(FakeFPLClient):
    """Fails the first bootstrap request, then behaves."""

    async def get_bootstrap_static(self):
        if "bootstrap" not in self.calls:
            self.calls.append("bootstrap")
            raise FPLAPIError("maintenance")
        return await super().get_bootstrap_static()


def test_initial_period_explicit(test_config):
    service = service_main.StandingsService(test_config, period_id="feb-mar")
    assert service._initial_period() == "feb-mar"


def test_initial_period_falls_back_to_default_in_close_season(test_config, monkeypatch):
    monkeypatch.setattr(service_main, "current_period_for", lambda day: None)
    service = service_main.StandingsService(test_config)
    assert service._initial_period() == test_config.default_period


def test_load_retries_until_success(test_config, capsys):
    service = service_main.StandingsService(test_config)
    service.client = FlakyBootstrapClient()
    service.running = True

    session = asyncio.run(service.load())

    assert session is not None
    assert session.live_gameweek_id == 3
    out = capsys.readouterr().out
    assert "Error Loading Data" in out
    assert "Bootstrap API error: maintenance" in out


def test_load_stops_when_not_running(test_config):
    service = service_main.StandingsService(test_config)
    service.client = FakeFPLClient()
    assert asyncio.run(service.load()) is None


def test_printed_table(test_config, capsys):
    async def scenario():
        service = service_main.StandingsService(test_config, period_id="aug-sep")
        service.client = FakeFPLClient()
        service.running = True
        session = await service.load()
        service._print(await aggregate_standings(service.client, session, "aug-sep"))

    asyncio.run(scenario())
    out = capsys.readouterr().out
    assert "August + September Standings" in out
    assert "[LIVE GW 3]" in out
    assert "League ID: 286461" in out


def test_refresh_signal_without_refresher_is_ignored(test_config):
    service = service_main.StandingsService(test_config)
    assert service._handle_manual_refresh(signal.SIGHUP) is None


def test_refresh_signal_recomputes_standings(test_config, capsys):
    async def scenario():
        service = service_main.StandingsService(test_config, period_id="aug-sep")
        service.client = FakeFPLClient()
        service.running = True
        session = await service.load()
        service.refresher = LiveRefresher(service.client, session, "aug-sep", on_update=service._print)

        await service._handle_manual_refresh(signal.SIGHUP)
        return service

    service = asyncio.run(scenario())
    assert service.refresher.latest.period_id == "aug-sep"
    assert ("live", 3) in service.client.calls
    assert "August + September Standings" in capsys.readouterr().out


def test_load_retries_on_malformed_bootstrap(test_config, capsys):
    class MalformedThenValidClient(FakeFPLClient):
        async def get_bootstrap_static(self):
            first = "bootstrap" not in self.calls
            payload = await super().get_bootstrap_static()
            return {"events": [{"id": 1, "deadline_time": 1723829400}]} if first else payload

    service = service_main.StandingsService(test_config)
    service.client = MalformedThenValidClient()
    service.running = True

    session = asyncio.run(service.load())

    assert session is not None
    assert "Bootstrap API error" in capsys.readouterr().out
