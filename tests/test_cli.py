import json
from unittest.mock import AsyncMock, Mock, patch

import pytest
from click.testing import CliRunner

from crowdmap_search.cli import cli
from crowdmap_search.data_models.sites import Report, WeatherData
from crowdmap_search.exceptions import InvalidAccessTokenError, ReportSubmissionError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "sites.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": "s1",
                    "name": "Tower",
                    "description": "Iron lattice tower",
                    "location": {"lat": 48.8584, "lng": 2.2945},
                    "crowd_level": "high",
                },
                {
                    "id": "s2",
                    "name": "Louvre",
                    "location": {"lat": 48.8606, "lng": 2.3376},
                    "crowd_level": "low",
                },
            ]
        )
    )
    return str(path)


def _report(level="critical"):
    return Report(id="r1", site_id="s1", user_id="u1", crowd_level=level)


class TestSearchCommand:
    def test_prints_site_group(self, runner, catalog_file):
        result = runner.invoke(
            cli,
            ["search", "tow", "--debounce-ms", "0"],
            env={"CATALOG_PATH": catalog_file},
        )

        assert result.exit_code == 0, result.output
        assert "Live Trip Sites" in result.output
        assert "Tower [high] - Iron lattice tower" in result.output
        assert "Louvre" not in result.output
        assert "Locations" not in result.output

    def test_no_results(self, runner, catalog_file):
        result = runner.invoke(
            cli,
            ["search", "zzz", "--debounce-ms", "0"],
            env={"CATALOG_PATH": catalog_file},
        )

        assert result.exit_code == 0
        assert "No results found." in result.output

    def test_missing_catalog(self, runner):
        result = runner.invoke(cli, ["search", "tow"])

        assert result.exit_code == 1
        assert "CATALOG_URL or CATALOG_PATH" in result.output

    def test_invalid_token(self, runner, catalog_file):
        with patch(
            "crowdmap_search.cli.validate_access_token",
            AsyncMock(side_effect=InvalidAccessTokenError("Access token is invalid")),
        ):
            result = runner.invoke(
                cli,
                ["search", "tow"],
                env={"CATALOG_PATH": catalog_file, "MAPBOX_ACCESS_TOKEN": "pk.bad"},
            )

        assert result.exit_code == 1
        assert "Access token is invalid" in result.output

    def test_skip_token_validation(self, runner, catalog_file):
        validate = AsyncMock()
        geocode = AsyncMock(return_value=[])
        with patch("crowdmap_search.cli.validate_access_token", validate), patch(
            "crowdmap_search.clients.GeocodingClient.search_locations", geocode
        ):
            result = runner.invoke(
                cli,
                ["search", "tow", "--debounce-ms", "0", "--skip-token-validation"],
                env={"CATALOG_PATH": catalog_file, "MAPBOX_ACCESS_TOKEN": "pk.test"},
            )

        assert result.exit_code == 0, result.output
        validate.assert_not_called()
        geocode.assert_awaited_once_with("tow")


class TestReportCommand:
    def test_submit(self, runner):
        client = Mock()
        client.submit_report = AsyncMock(return_value=_report())
        with patch("crowdmap_search.cli.ReportsClient", return_value=client) as ctor:
            result = runner.invoke(
                cli,
                ["report", "s1", "critical", "--content", "Long queue"],
                env={"REPORTS_API_URL": "https://app.test"},
            )

        assert result.exit_code == 0, result.output
        assert "Report r1 saved: critical" in result.output
        ctor.assert_called_once_with("https://app.test")
        client.submit_report.assert_awaited_once_with("s1", "critical", "Long queue")

    def test_update(self, runner):
        client = Mock()
        client.update_report = AsyncMock(return_value=_report("low"))
        with patch("crowdmap_search.cli.ReportsClient", return_value=client):
            result = runner.invoke(
                cli,
                ["report", "s1", "low", "--report-id", "r1"],
                env={"REPORTS_API_URL": "https://app.test"},
            )

        assert result.exit_code == 0, result.output
        client.update_report.assert_awaited_once_with("r1", "low", None)

    def test_rejected(self, runner):
        client = Mock()
        client.submit_report = AsyncMock(side_effect=ReportSubmissionError("Unauthorized"))
        with patch("crowdmap_search.cli.ReportsClient", return_value=client):
            result = runner.invoke(
                cli,
                ["report", "s1", "high"],
                env={"REPORTS_API_URL": "https://app.test"},
            )

        assert result.exit_code == 1
        assert "Error: Unauthorized" in result.output

    def test_invalid_level(self, runner):
        result = runner.invoke(
            cli, ["report", "s1", "packed"], env={"REPORTS_API_URL": "https://app.test"}
        )
        assert result.exit_code == 2

    def test_missing_reports_url(self, runner):
        result = runner.invoke(cli, ["report", "s1", "high"])
        assert result.exit_code == 1
        assert "REPORTS_API_URL" in result.output


class TestReportsCommand:
    def test_lists_reports(self, runner):
        catalog = Mock()
        catalog.fetch_reports = AsyncMock(
            return_value=[
                Report(
                    id="r1",
                    site_id="s1",
                    user_id="u1",
                    crowd_level="high",
                    content="Busy",
                    created_at="2025-01-02",
                )
            ]
        )
        with patch("crowdmap_search.cli.SiteCatalogClient", return_value=catalog):
            result = runner.invoke(
                cli, ["reports", "s1"], env={"CATALOG_URL": "https://catalog.test"}
            )

        assert result.exit_code == 0, result.output
        assert "2025-01-02 [high] Busy" in result.output

    def test_no_reports(self, runner):
        catalog = Mock()
        catalog.fetch_reports = AsyncMock(return_value=[])
        with patch("crowdmap_search.cli.SiteCatalogClient", return_value=catalog):
            result = runner.invoke(
                cli, ["reports", "s1"], env={"CATALOG_URL": "https://catalog.test"}
            )

        assert "No reports yet." in result.output

    def test_requires_catalog_url(self, runner, catalog_file):
        result = runner.invoke(cli, ["reports", "s1"], env={"CATALOG_PATH": catalog_file})
        assert result.exit_code == 1
        assert "CATALOG_URL" in result.output


class TestCatalogFileErrors:
    def test_missing_catalog_file(self, runner, tmp_path):
        result = runner.invoke(
            cli,
            ["search", "tow", "--debounce-ms", "0"],
            env={"CATALOG_PATH": str(tmp_path / "missing.json")},
        )

        assert result.exit_code == 1
        assert "Cannot read site catalog" in result.output
        assert not isinstance(result.exception, FileNotFoundError)


class TestReportForUser:
    def test_updates_existing_user_report(self, runner):
        catalog = Mock()
        catalog.get_user_report = AsyncMock(return_value=_report("high"))
        client = Mock()
        client.update_report = AsyncMock(return_value=_report("low"))
        with patch(
            "crowdmap_search.cli.SiteCatalogClient", return_value=catalog
        ), patch("crowdmap_search.cli.ReportsClient", return_value=client):
            result = runner.invoke(
                cli,
                ["report", "s1", "low", "--user-id", "u1"],
                env={
                    "REPORTS_API_URL": "https://app.test",
                    "CATALOG_URL": "https://catalog.test",
                },
            )

        assert result.exit_code == 0, result.output
        catalog.get_user_report.assert_awaited_once_with("s1", "u1")
        client.update_report.assert_awaited_once_with("r1", "low", None)
        assert "Report r1 saved: low" in result.output

    def test_submits_when_user_has_no_report(self, runner):
        catalog = Mock()
        catalog.get_user_report = AsyncMock(return_value=None)
        client = Mock()
        client.submit_report = AsyncMock(return_value=_report("moderate"))
        with patch(
            "crowdmap_search.cli.SiteCatalogClient", return_value=catalog
        ), patch("crowdmap_search.cli.ReportsClient", return_value=client):
            result = runner.invoke(
                cli,
                ["report", "s1", "moderate", "--user-id", "u1"],
                env={
                    "REPORTS_API_URL": "https://app.test",
                    "CATALOG_URL": "https://catalog.test",
                },
            )

        assert result.exit_code == 0, result.output
        client.submit_report.assert_awaited_once_with("s1", "moderate", None)
        client.update_report.assert_not_called()

    def test_user_lookup_requires_catalog_url(self, runner):
        result = runner.invoke(
            cli,
            ["report", "s1", "low", "--user-id", "u1"],
            env={"REPORTS_API_URL": "https://app.test"},
        )

        assert result.exit_code == 1
        assert "CATALOG_URL" in result.output


class TestSiteCommand:
    def test_shows_site_and_weather(self, runner, tower_site):
        catalog = Mock()
        catalog.get_site = AsyncMock(return_value=tower_site)
        weather_client = Mock()
        weather_client.get_weather = AsyncMock(
            return_value=WeatherData(
                temperature=18,
                condition="Sunny",
                humidity=40,
                wind_speed=9,
                icon="//cdn.test/113.png",
            )
        )
        with patch(
            "crowdmap_search.cli.SiteCatalogClient", return_value=catalog
        ), patch(
            "crowdmap_search.cli.WeatherClient", return_value=weather_client
        ) as weather_ctor:
            result = runner.invoke(
                cli,
                ["site", "s1"],
                env={"CATALOG_URL": "https://catalog.test", "WEATHER_API_KEY": "wk"},
            )

        assert result.exit_code == 0, result.output
        assert "Tower [high]" in result.output
        assert "48.85840, 2.29450" in result.output
        assert "Weather: 18°C, Sunny, humidity 40%, wind 9 km/h" in result.output
        weather_ctor.assert_called_once_with("wk")
        weather_client.get_weather.assert_awaited_once_with(tower_site.location)

    def test_without_weather_key(self, runner, tower_site):
        catalog = Mock()
        catalog.get_site = AsyncMock(return_value=tower_site)
        with patch(
            "crowdmap_search.cli.SiteCatalogClient", return_value=catalog
        ), patch("crowdmap_search.cli.WeatherClient") as weather_ctor:
            result = runner.invoke(
                cli, ["site", "s1"], env={"CATALOG_URL": "https://catalog.test"}
            )

        assert result.exit_code == 0, result.output
        assert "Weather" not in result.output
        weather_ctor.assert_not_called()

    def test_site_not_found(self, runner):
        catalog = Mock()
        catalog.get_site = AsyncMock(return_value=None)
        with patch("crowdmap_search.cli.SiteCatalogClient", return_value=catalog):
            result = runner.invoke(
                cli, ["site", "nope"], env={"CATALOG_URL": "https://catalog.test"}
            )

        assert result.exit_code == 1
        assert "Site nope not found." in result.output
