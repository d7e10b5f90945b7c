from logging import Logger
from pathlib import Path

import pytest

from utils.config_reader import ConfigReader

CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "unit_test.yml"


def test_initialize_configurations(log: Logger):
    configs = ConfigReader(log, CONFIG_PATH)
    assert configs.configs_data is None


def test_load_configurations(log: Logger):
    configs = ConfigReader(log, CONFIG_PATH).load_configurations()
    assert configs.configs_data["api"]["base_url"] == "https://api.example.test/v1/"


def test_api_config_and_jobs(log: Logger, monkeypatch):
    monkeypatch.setenv("CLINIC_SYNC_TEST_KEY", "k-123")
    reader = ConfigReader(log, CONFIG_PATH)

    api = reader.api_config()
    assert api.api_key == "k-123"
    assert api.base_url == "https://api.example.test/v1"
    assert api.clinic_id == "42"
    assert api.practitioner_ids == ("10", "20")

    jobs = {j.name: j for j in reader.sync_jobs()}
    assert list(jobs) == ["appointments", "patients", "custom_things"]
    assert jobs["appointments"].sheet == "Appts"
    assert jobs["appointments"].days_back == 7
    assert jobs["custom_things"].params == {"archived": "false"}

    assert reader.section("report") == {"sheet": "Report", "days_back": 14}
    assert reader.section("missing") == {}


def test_invalid_configurations_wrong_path(log: Logger):
    with pytest.raises(SystemExit) as failed:
        ConfigReader(log, Path("tests/config/test_wrong_file.yml")).load_configurations()
    assert failed.value.code == 1


def test_invalid_configurations_directory(log: Logger):
    with pytest.raises(SystemExit):
        ConfigReader(log, CONFIG_PATH.parent).load_configurations()


def test_invalid_configurations_not_a_mapping(log: Logger, tmp_path):
    bad = tmp_path / "list.yml"
    bad.write_text("- a\n- b\n")
    with pytest.raises(SystemExit):
        ConfigReader(log, bad).load_configurations()


def test_invalid_configurations_broken_yaml(log: Logger, tmp_path):
    bad = tmp_path / "broken.yml"
    bad.write_text("api: [unclosed\n")
    with pytest.raises(SystemExit):
        ConfigReader(log, bad).load_configurations()
