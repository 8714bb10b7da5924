from pathlib import Path

import pytest

from chartops.project.config import Project, ProjectConfig


def test__ProjectConfig__load__defaults_without_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = ProjectConfig.load()

    assert config.file is None
    assert config.config == Project()


def test__ProjectConfig__load__finds_file_in_parent_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "charts" / "serverless").mkdir(parents=True)
    (tmp_path / ProjectConfig.FILENAME).write_text(
        "chart_path: charts/serverless\nchart_namespace: serverless-system\ngateway: kubectl\ncache_max_entries: 10\n"
    )
    (tmp_path / "resources").mkdir()
    monkeypatch.chdir(tmp_path / "resources")

    config = ProjectConfig.load()

    assert config.file == tmp_path / ProjectConfig.FILENAME
    assert config.config.chart_path == tmp_path / "charts" / "serverless"
    assert config.config.chart_namespace == "serverless-system"
    assert config.config.gateway == "kubectl"
    assert config.config.cache_max_entries == 10
    assert config.config.field_manager == "chartops"


def test__ProjectConfig__load__empty_file(tmp_path: Path) -> None:
    file = tmp_path / ProjectConfig.FILENAME
    file.write_text("")

    config = ProjectConfig.load(file)

    assert config.config.chart_path == tmp_path / "chart"
    assert config.config.gateway == "dynamic"


def test__ProjectConfig__load__keeps_absolute_chart_path(tmp_path: Path) -> None:
    file = tmp_path / ProjectConfig.FILENAME
    file.write_text(f"chart_path: {tmp_path / 'elsewhere'}\n")

    assert ProjectConfig.load(file).config.chart_path == tmp_path / "elsewhere"
