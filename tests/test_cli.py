"""Tests for the command line interface"""

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from costlens.cli.main import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CLI runner isolated from user configuration"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
    return CliRunner()


@pytest.fixture
def cost_file(tmp_path, cost_explorer_response):
    path = tmp_path / "costs.json"
    path.write_text(json.dumps(cost_explorer_response))
    return path


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "costs.csv"
    rows = ["date,service,amount,unit"]
    for day in range(1, 29):
        rows.append(f"2024-02-{day:02d},Amazon Elastic Compute Cloud - Compute,{10 + day % 2 * 2},USD")
        rows.append(f"2024-02-{day:02d},AWS Lambda,1.5,USD")
    rows.append("not-a-date,AWS Lambda,1.0,USD")
    path.write_text("\n".join(rows) + "\n")
    return path


@pytest.fixture
def scenario_file(tmp_path):
    path = tmp_path / "scenarios.yaml"
    path.write_text(yaml.safe_dump([
        {"name": "Growth", "business_growth": 1.3, "external_factors": "Launch"},
        {"name": "Cut", "business_growth": 0.8},
    ]))
    return path


class TestAnalyzeCommand:
    """Test analyze command"""

    def test_table(self, runner, cost_file):
        """Test the default table output"""
        result = runner.invoke(cli, ["analyze", str(cost_file)])
        assert result.exit_code == 0, result.output
        assert "Analysis Summary" in result.output
        assert "Cost by Service" in result.output

    def test_json_output_file(self, runner, cost_file, tmp_path):
        """Test JSON written to a file"""
        out = tmp_path / "report.json"
        result = runner.invoke(cli, ["analyze", str(cost_file), "-f", "json", "-o", str(out)])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["serviceCount"] == 3
        assert data["anomalies"]["totalAnomalies"] == 1
        assert data["windowDays"] == 30

    def test_window_days(self, runner, cost_file, tmp_path):
        """Test the window option"""
        out = tmp_path / "report.yaml"
        result = runner.invoke(cli, ["analyze", str(cost_file), "-w", "7", "-f", "yaml", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert yaml.safe_load(out.read_text())["windowDays"] == 7

    def test_invalid_window(self, runner, cost_file):
        """Test invalid windows exit non-zero"""
        result = runner.invoke(cli, ["analyze", str(cost_file), "-w", "0"])
        assert result.exit_code != 0
        assert "window_days" in result.output

    def test_markdown(self, runner, cost_file, tmp_path):
        """Test Markdown report"""
        out = tmp_path / "report.md"
        result = runner.invoke(cli, ["analyze", str(cost_file), "-f", "markdown", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert out.read_text().startswith("# Cost Analysis Report")

    def test_csv_input(self, runner, csv_file, tmp_path):
        """Test CSV exports"""
        out = tmp_path / "report.json"
        result = runner.invoke(cli, ["analyze", str(csv_file), "-f", "json", "-o", str(out)])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["pointCount"] == 56
        assert [s["displayName"] for s in data["services"]] == ["Amazon EC2", "AWS Lambda"]

    def test_invalid_json(self, runner, tmp_path):
        """Test malformed input files"""
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        result = runner.invoke(cli, ["analyze", str(bad)])
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_csv_missing_columns(self, runner, tmp_path):
        """Test CSV files without required columns"""
        bad = tmp_path / "bad.csv"
        bad.write_text("day,cost\n2024-01-01,1\n")
        result = runner.invoke(cli, ["analyze", str(bad)])
        assert result.exit_code == 1
        assert "Missing CSV columns" in result.output

    def test_no_cost_data(self, runner, tmp_path):
        """Test an export without usable data"""
        empty = tmp_path / "empty.json"
        empty.write_text(json.dumps({"ResultsByTime": []}))
        result = runner.invoke(cli, ["analyze", str(empty)])
        assert result.exit_code == 1
        assert "No usable cost data" in result.output


class TestTrendsCommand:
    """Test trends command"""

    def test_monthly(self, runner, cost_file):
        """Test monthly trends"""
        result = runner.invoke(cli, ["trends", str(cost_file)])
        assert result.exit_code == 0, result.output
        assert "Trend Summary" in result.output
        assert "2024-01" in result.output

    def test_daily_csv(self, runner, csv_file):
        """Test daily trends from CSV"""
        result = runner.invoke(cli, ["trends", str(csv_file), "--granularity", "day"])
        assert result.exit_code == 0, result.output
        assert "Trending Services" in result.output

    def test_limit_must_be_positive(self, runner, cost_file):
        """Test a zero limit is rejected"""
        result = runner.invoke(cli, ["trends", str(cost_file), "--limit", "0"])
        assert result.exit_code == 2


class TestAnomaliesCommand:
    """Test anomalies command"""

    def test_anomalies(self, runner, cost_file):
        """Test the spike is reported"""
        result = runner.invoke(cli, ["anomalies", str(cost_file)])
        assert result.exit_code == 0, result.output
        assert "Anomaly Summary" in result.output
        assert "Immediate Cost Investigation Required" in result.output

    def test_no_anomalies(self, runner, csv_file):
        """Test steady spend"""
        result = runner.invoke(cli, ["anomalies", str(csv_file)])
        assert result.exit_code == 0, result.output
        assert "No cost anomalies detected" in result.output

    def test_limit_must_be_positive(self, runner, cost_file):
        """Test non-positive limits are rejected"""
        for limit in ("0", "-1"):
            result = runner.invoke(cli, ["anomalies", str(cost_file), "--limit", limit])
            assert result.exit_code == 2


class TestForecastCommand:
    """Test forecast command"""

    def test_table(self, runner, cost_file):
        """Test forecast table"""
        result = runner.invoke(cli, ["forecast", str(cost_file), "--horizon", "3"])
        assert result.exit_code == 0, result.output
        assert "Forecast Summary" in result.output
        assert "Partial month 2024-02 (14/29 days) scaled" in result.output

    def test_scenarios_json(self, runner, cost_file, scenario_file, tmp_path):
        """Test scenarios and revenue ratio in JSON output"""
        out = tmp_path / "forecast.json"
        result = runner.invoke(cli, [
            "forecast", str(cost_file), "--horizon", "6", "--no-seasonality",
            "--scenarios", str(scenario_file), "--revenue-per-dollar", "4",
            "-f", "json", "-o", str(out),
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert len(data["periods"]) == 6
        assert data["periods"][0]["seasonalityMultiplier"] == 1.0
        assert data["periods"][0]["revenueProjection"] == pytest.approx(
            data["periods"][0]["businessAdjustedCost"] * 4
        )
        assert data["businessMetrics"]["trailingMonth"]["action"] == "scaled"
        assert [s["name"] for s in data["scenarios"]] == ["Growth", "Cut"]
        assert data["scenarios"][0]["percentageImpact"] == pytest.approx(30.0)

    def test_invalid_horizon(self, runner, cost_file):
        """Test horizons outside 3/6/12"""
        result = runner.invoke(cli, ["forecast", str(cost_file), "--horizon", "5"])
        assert result.exit_code == 2

    def test_invalid_scenarios(self, runner, cost_file, tmp_path):
        """Test malformed scenario files"""
        bad = tmp_path / "bad.yaml"
        bad.write_text(yaml.safe_dump([{"business_growth": 2}]))
        result = runner.invoke(cli, ["forecast", str(cost_file), "--scenarios", str(bad)])
        assert result.exit_code == 1
        assert "Invalid scenario" in result.output


class TestConfigCommand:
    """Test config commands"""

    def test_show(self, runner):
        """Test showing the effective configuration"""
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0, result.output
        assert "window_days: 30" in result.output

    def test_show_with_config_file(self, runner, temp_config_file):
        """Test --config is applied"""
        result = runner.invoke(cli, ["--config", str(temp_config_file), "config", "show"])
        assert result.exit_code == 0, result.output
        assert "window_days: 14" in result.output

    def test_invalid_config(self, runner, tmp_path):
        """Test invalid configuration exits with the error"""
        bad = tmp_path / "bad.yaml"
        bad.write_text("forecast:\n  horizon_months: 5\n")
        result = runner.invoke(cli, ["--config", str(bad), "config", "show"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_init(self, runner, tmp_path):
        """Test writing a default configuration"""
        path = tmp_path / "costlens.yaml"

        result = runner.invoke(cli, ["config", "init", str(path)])
        assert result.exit_code == 0, result.output
        assert yaml.safe_load(path.read_text())["anomaly"]["window_days"] == 30

        again = runner.invoke(cli, ["config", "init", str(path)])
        assert again.exit_code == 1
        assert "already exists" in again.output

    def test_version(self, runner):
        """Test version option"""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
