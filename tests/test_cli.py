"""
Unit tests for the command-line interface
"""

import json
import threading
from unittest.mock import patch

import cli
from amenity_finder.errors import HttpError
from amenity_finder.overpass.api_client import OverpassAPIClient

from conftest import make_point


def fake_fetch(points=None, error=None):
    def fetch(self, lat, lon, radius_m, filters=None, token=None):
        if error is not None:
            raise error
        return list(points or [])
    return fetch


class TestCli:
    """Test cases for cli.main"""

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_query_prints_overpass_ql(self, capsys):
        assert cli.main(["query", "--lat", "52.52", "--lon", "13.405", "--radius", "800", "--no-glass"]) == 0
        out = capsys.readouterr().out
        assert 'nwr["amenity"="toilets"](around:800,52.52,13.405);' in out
        assert "recycling" not in out

    def test_fetch_writes_report(self, tmp_path):
        output = tmp_path / "amenities.json"
        points = [make_point(1, "toilets"), make_point(2, "drinking_water")]

        with patch.object(OverpassAPIClient, "fetch", fake_fetch(points)):
            code = cli.main(["fetch", "--lat", "52.52", "--lon", "13.405", "--output", str(output)])

        assert code == 0
        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["center"] == {"lat": 52.52, "lon": 13.405}
        assert report["counts"] == {"toilets": 1, "fountains": 1, "glass": 0}
        assert [p["id"] for p in report["points"]] == ["node/1", "node/2"]
        assert report["points"][0]["name"] == "Point"
        assert report["error"] is None

    def test_fetch_failure_returns_error_code(self, tmp_path):
        output = tmp_path / "amenities.json"

        with patch.object(OverpassAPIClient, "fetch", fake_fetch(error=HttpError(504))):
            code = cli.main(["fetch", "--lat", "52.52", "--lon", "13.405", "--output", str(output)])

        assert code == 1
        assert not output.exists()

    def test_batch_shares_cache(self, tmp_path):
        csv_path = tmp_path / "locations.csv"
        csv_path.write_text(
            "name,lat,lon\nalex,52.52,13.405\nalex_again,52.52,13.405\nbroken,north,13.4\n",
            encoding="utf-8",
        )
        calls = []

        def fetch(self, lat, lon, radius_m, filters=None, token=None):
            calls.append((lat, lon))
            return [make_point(1)]

        with patch.object(OverpassAPIClient, "fetch", fetch):
            code = cli.main(["batch", "--input", str(csv_path), "--output", str(tmp_path / "out")])

        assert code == 0
        assert len(calls) == 1
        assert (tmp_path / "out" / "alex.json").exists()
        assert (tmp_path / "out" / "alex_again.json").exists()

    def test_batch_missing_input(self, tmp_path):
        assert cli.main(["batch", "--input", str(tmp_path / "missing.csv")]) == 1

    def test_fetch_timeout_returns_error_code(self, tmp_path):
        output = tmp_path / "amenities.json"
        gate = threading.Event()

        def fetch(self, lat, lon, radius_m, filters=None, token=None):
            gate.wait(5)
            return [make_point(1)]

        try:
            with patch.object(OverpassAPIClient, "fetch", fetch):
                code = cli.main(["fetch", "--lat", "52.52", "--lon", "13.405",
                                 "--timeout", "0.3", "--output", str(output)])
        finally:
            gate.set()

        assert code == 1
        assert not output.exists()

    def test_timed_out_report_has_no_stale_points(self):
        gate = threading.Event()

        def fetch(self, lat, lon, radius_m, filters=None, token=None):
            if lat < 50:
                gate.wait(5)
            return [make_point(1, lat=lat, lon=lon)]

        with patch.object(OverpassAPIClient, "fetch", fetch):
            controller = cli.build_controller(None)
            try:
                berlin = cli.fetch_report(controller, 52.52, 13.405, 1200.0, 2.0)
                paris = cli.fetch_report(controller, 48.8566, 2.3522, 1200.0, 0.3)
            finally:
                controller.close()
                gate.set()

        assert [p.id for p in berlin.points] == ["node/1"]
        assert berlin.error is None
        assert paris.points == []
        assert paris.counts == {"toilets": 0, "fountains": 0, "glass": 0}
        assert paris.error == "Timed out after 0.3s"

    def test_batch_counts_timed_out_row_as_failed(self, tmp_path):
        csv_path = tmp_path / "locations.csv"
        csv_path.write_text("name,lat,lon\nberlin,52.52,13.405\nparis,48.8566,2.3522\n", encoding="utf-8")
        gate = threading.Event()

        def fetch(self, lat, lon, radius_m, filters=None, token=None):
            if lat < 50:
                gate.wait(5)
            return [make_point(1, lat=lat, lon=lon)]

        try:
            with patch.object(OverpassAPIClient, "fetch", fetch):
                code = cli.main(["batch", "--input", str(csv_path), "--output", str(tmp_path / "out"),
                                 "--timeout", "0.3"])
        finally:
            gate.set()

        assert code == 1
        assert (tmp_path / "out" / "berlin.json").exists()
        assert not (tmp_path / "out" / "paris.json").exists()

    def test_batch_names_stay_inside_output_dir(self, tmp_path):
        csv_path = tmp_path / "locations.csv"
        csv_path.write_text(
            "name,lat,lon\n../escape,52.52,13.405\ncafe,52.53,13.405\ncafe,52.54,13.405\n..,52.55,13.405\n",
            encoding="utf-8",
        )
        out = tmp_path / "out"

        with patch.object(OverpassAPIClient, "fetch", fake_fetch([make_point(1)])):
            code = cli.main(["batch", "--input", str(csv_path), "--output", str(out)])

        assert code == 0
        assert not (tmp_path / "escape.json").exists()
        assert sorted(p.name for p in out.iterdir()) == [
            "cafe.json", "cafe_003.json", "escape.json", "location_004.json",
        ]


class TestReportName:
    """Test cases for cli.report_name"""

    def test_strips_directories_and_unsafe_characters(self):
        taken = set()
        assert cli.report_name("../../etc/passwd", 1, taken) == "passwd"
        assert cli.report_name("C:\\temp\\berlin", 2, taken) == "berlin"
        assert cli.report_name("Mitte / Tiergarten", 3, taken) == "Tiergarten"
        assert cli.report_name("  ", 4, taken) == "location_004"

    def test_repeated_names_get_a_suffix(self):
        taken = set()
        assert cli.report_name("alex", 1, taken) == "alex"
        assert cli.report_name("alex", 2, taken) == "alex_002"
        assert cli.report_name("alex_002", 3, taken) == "alex_002_003"
