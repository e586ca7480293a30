"""CLI smoke tests using typer's CliRunner."""

import json

import pytest
import yaml
from typer.testing import CliRunner

from layerforge import config as config_module
from layerforge.cli.app import app
from layerforge.cli.commands import config_cmd
from layerforge.config import ENV_VARS, reset_config

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep CLI runs away from the real ~/.config and working directory."""
    config_file = tmp_path / "config" / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_file.parent)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    monkeypatch.setattr(config_cmd, "CONFIG_FILE", config_file)
    monkeypatch.setattr(config_module, "_dotenv_loaded", True)
    for env_var in ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("LAYERFORGE_SESSIONS_DIR", str(tmp_path / "sessions"))
    monkeypatch.setenv("LAYERFORGE_STORAGE_DIR", str(tmp_path / "artifacts"))
    reset_config()
    yield config_file
    reset_config()


@pytest.fixture
def collection_files(tmp_path, scenario_zip, scenario_config):
    archive = tmp_path / "collection.zip"
    archive.write_bytes(scenario_zip)
    config_path = tmp_path / "collection.yaml"
    scenario_config.to_yaml(config_path)
    return archive, config_path


class TestConfigCommand:
    """Tests for the config command."""

    def test_config_show(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "Generation" in result.output
        assert "Storage" in result.output
        assert "LAYERFORGE_BATCH_SIZE" in result.output

    def test_config_show_json(self):
        result = runner.invoke(app, ["--json", "config", "show"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["config"]["generation"]["batch_size"] == 100

    def test_config_set_and_reset(self, isolated_config):
        result = runner.invoke(app, ["config", "set", "generation.batch_size", "50"])
        assert result.exit_code == 0
        assert json.loads(isolated_config.read_text())["generation"]["batch_size"] == 50

        result = runner.invoke(app, ["config", "reset"])
        assert result.exit_code == 0
        assert not isolated_config.exists()

    def test_config_set_invalid_key(self):
        result = runner.invoke(app, ["config", "set", "invalid.key", "value"])
        assert result.exit_code == 1
        assert "Unknown key" in result.output

    def test_config_set_invalid_int_value(self):
        result = runner.invoke(app, ["config", "set", "generation.batch_size", "abc"])
        assert result.exit_code == 1
        assert "Invalid integer" in result.output

    def test_config_set_missing_args(self):
        result = runner.invoke(app, ["config", "set"])
        assert result.exit_code == 1

    def test_config_unknown_action(self):
        result = runner.invoke(app, ["config", "unknown_action"])
        assert result.exit_code == 1
        assert "Unknown action" in result.output


class TestVersionFlag:
    """Test the --version flag."""

    def test_version_output(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "layerforge" in result.output


class TestLayersCommand:
    """Tests for the layers command."""

    def test_layers_nonexistent_file(self):
        result = runner.invoke(app, ["layers", "/nonexistent/collection.zip"])
        assert result.exit_code == 3

    def test_layers_human(self, collection_files):
        archive, _ = collection_files
        result = runner.invoke(app, ["layers", str(archive)])
        assert result.exit_code == 0
        assert "Background" in result.output
        assert "Extracted 3 layers" in result.output

    def test_layers_json(self, collection_files):
        archive, _ = collection_files
        result = runner.invoke(app, ["--json", "layers", str(archive)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["layer_count"] == 3
        assert data["trait_count"] == 5
        assert data["total_combinations"] == 4
        assert [row["Layer"] for row in data["layers"]] == ["Background", "Eyes", "Hat"]

    def test_layers_bad_archive(self, tmp_path):
        bogus = tmp_path / "bogus.zip"
        bogus.write_bytes(b"not a zip")
        result = runner.invoke(app, ["layers", str(bogus)])
        assert result.exit_code == 1


class TestRarityCommand:
    """Tests for the rarity command."""

    def test_rarity_with_layers(self, collection_files):
        archive, config_path = collection_files
        result = runner.invoke(
            app, ["rarity", str(config_path), "--layers", str(archive), "--seed", "1"]
        )
        assert result.exit_code == 0
        assert "Tier Preview" in result.output

    def test_rarity_json(self, collection_files):
        _, config_path = collection_files
        result = runner.invoke(app, ["--json", "rarity", str(config_path), "-n", "100"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["total_combinations"] == 4
        assert sum(int(row["Count"]) for row in data["tiers"]) == 100
        assert data["rarity"]["Eyes"][0]["trait"] == "Normal"

    def test_rarity_invalid_weights(self, tmp_path):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text(yaml.safe_dump({"weights": {"Eyes": {"A": 0, "B": 0}}}))
        result = runner.invoke(app, ["rarity", str(config_path)])
        assert result.exit_code == 1


class TestGenerateCommand:
    """Tests for the generate command."""

    def test_generate_json(self, tmp_path, collection_files):
        archive, config_path = collection_files
        output_dir = tmp_path / "out"
        result = runner.invoke(
            app,
            [
                "--json",
                "generate",
                str(archive),
                str(config_path),
                "-o",
                str(output_dir),
                "--seed",
                "42",
                "--batch-size",
                "2",
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["artifact_count"] == 4
        assert data["metadata_uri"].startswith("file://")

        session_dir = output_dir / data["session_id"]
        assert sorted(p.name for p in session_dir.iterdir()) == [
            "0.png",
            "1.png",
            "2.png",
            "3.png",
            "metadata.json",
        ]
        assert (tmp_path / "sessions" / data["session_id"] / "result.json").exists()

    def test_generate_quiet(self, tmp_path, collection_files):
        archive, config_path = collection_files
        result = runner.invoke(
            app,
            ["generate", str(archive), str(config_path), "-o", str(tmp_path / "out"), "-q"],
        )
        assert result.exit_code == 0, result.output
        assert "Generation complete" in result.output

    def test_generate_invalid_config(self, tmp_path, collection_files, scenario_config):
        archive, _ = collection_files
        config_path = tmp_path / "bad.yaml"
        scenario_config.model_copy(update={"target_supply": 0}).to_yaml(config_path)

        args = ["generate", str(archive), str(config_path), "-o", str(tmp_path / "out")]
        result = runner.invoke(app, ["--json", *args])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["status"] == "error"
        assert data["errors"][0]["category"] == "SUPPLY_OUT_OF_RANGE"
        assert list((tmp_path / "sessions").iterdir()) == []

    def test_generate_missing_files(self, tmp_path):
        result = runner.invoke(
            app, ["generate", str(tmp_path / "none.zip"), str(tmp_path / "none.yaml")]
        )
        assert result.exit_code == 3

    def test_generate_bad_resource_mode(self, collection_files):
        archive, config_path = collection_files
        result = runner.invoke(
            app,
            ["generate", str(archive), str(config_path), "--resource-mode", "turbo"],
        )
        assert result.exit_code == 1
