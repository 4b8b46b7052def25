"""Tests for the demo-data aggregation API and settings wiring."""

from datetime import timedelta
from pathlib import Path

import pytest
from conftest import NOW, FakeClock

from bankdash.api import MockAggregationApi, PowensClient
from bankdash.bootstrap import create_api, create_orchestrator
from bankdash.config import ApiConfig, BankDashSettings, CacheConfig
from bankdash.errors import NotFoundError
from bankdash.reconciliation import detect_duplicates


class TestMockAggregationApi:
    @pytest.mark.unit
    def test_demo_data(self) -> None:
        api = MockAggregationApi()

        assert api.domain == "mock"
        assert [c.id for c in api.fetch_connections()] == [8, 17, 25]
        assert len(api.fetch_accounts()) == 5
        assert {c.name for c in api.fetch_connector_catalog()} == {
            "BoursoBank",
            "Fortuneo",
            "Bourse Direct",
        }

    @pytest.mark.unit
    def test_demo_data_has_no_duplicates(self) -> None:
        api = MockAggregationApi()
        assert detect_duplicates(api.fetch_connections(), api.fetch_accounts()) == []

    @pytest.mark.unit
    def test_sync_updates_timestamps(self) -> None:
        clock = FakeClock()
        api = MockAggregationApi(clock=clock)
        clock.advance(timedelta(minutes=5))

        connection = api.sync_connection(17)

        assert connection.last_update == NOW + timedelta(minutes=5)
        assert connection.next_try == NOW + timedelta(hours=1, minutes=5)

    @pytest.mark.unit
    def test_delete_cascades_and_repeats_fail(self) -> None:
        api = MockAggregationApi()

        api.delete_connection(8)

        assert 8 not in {c.id for c in api.fetch_connections()}
        assert all(a.id_connection != 8 for a in api.fetch_accounts())
        with pytest.raises(NotFoundError):
            api.delete_connection(8)
        with pytest.raises(NotFoundError):
            api.sync_connection(8)


class TestBootstrap:
    @pytest.mark.unit
    def test_mock_mode(self, tmp_path: Path) -> None:
        settings = BankDashSettings(
            cache=CacheConfig(path=tmp_path / "connectors.json")
        )

        assert isinstance(create_api(settings), MockAggregationApi)
        with create_orchestrator(settings) as orchestrator:
            orchestrator.refresh()
            assert len(orchestrator.snapshot.connections) == 3
            assert set(orchestrator.connector_map()) == {101, 102, 103}
        assert (tmp_path / "connectors.json").exists()

    @pytest.mark.unit
    def test_direct_mode(self) -> None:
        settings = BankDashSettings(
            api=ApiConfig(
                mode="direct",
                url="https://x.com/2.0",
                user_id="42",
                bearer_token="secret",
                timeout_seconds=5,
            )
        )

        api = create_api(settings)

        assert isinstance(api, PowensClient)
        assert api.domain == "https://x.com/2.0/"
        assert api.timeout == 5
