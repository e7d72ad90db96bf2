"""Tests for build configuration models and loading."""

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from skillbundle_cli.config import (
    BuildConfig,
    CatalogConfig,
    TemplateSourceConfig,
    load_config,
    resolve_env_vars,
)

# ------------------------------------------------------------------
# Models
# ------------------------------------------------------------------


class TestTemplateSourceConfig:
    def test_defaults(self):
        cfg = TemplateSourceConfig()
        assert cfg.provider == "fs"
        assert cfg.options == {}

    def test_with_options(self):
        cfg = TemplateSourceConfig(
            provider="http", options={"base_url": "https://cdn.example.com/templates"}
        )
        assert cfg.options["base_url"] == "https://cdn.example.com/templates"


class TestCatalogConfig:
    def test_defaults(self):
        cfg = CatalogConfig(name="acme-skills", owner_name="Acme")
        assert cfg.version == "1.0.0"
        assert cfg.path == Path(".claude-plugin/marketplace.json")
        assert cfg.plugin_root == "./plugins"

    def test_missing_owner_raises(self):
        with pytest.raises(ValidationError):
            CatalogConfig(name="acme-skills")  # type: ignore[call-arg]


class TestBuildConfig:
    def test_minimal(self):
        cfg = BuildConfig(source=Path("catalog"))
        assert cfg.output == Path("plugins")
        assert cfg.stacks == []
        assert cfg.templates is None
        assert cfg.catalog is None

    def test_missing_source_raises(self):
        with pytest.raises(ValidationError):
            BuildConfig()  # type: ignore[call-arg]

    def test_nested_sections(self):
        cfg = BuildConfig(
            source="catalog",
            stacks=["react-stack"],
            templates={"provider": "http", "options": {"base_url": "https://x.com"}},
            catalog={"name": "acme-skills", "owner_name": "Acme"},
        )
        assert cfg.source == Path("catalog")
        assert cfg.templates.provider == "http"
        assert cfg.catalog.name == "acme-skills"

    def test_roundtrip(self):
        cfg = BuildConfig(
            source="catalog", catalog=CatalogConfig(name="acme-skills", owner_name="Acme")
        )
        assert BuildConfig(**cfg.model_dump()) == cfg


# ------------------------------------------------------------------
# load_config
# ------------------------------------------------------------------


class TestLoadConfig:
    def test_yaml(self, tmp_path: Path):
        path = tmp_path / "build.yaml"
        path.write_text("source: ./catalog\nstacks: [react-stack]\n", encoding="utf-8")
        cfg = load_config(path)
        assert cfg.source == Path("catalog")
        assert cfg.stacks == ["react-stack"]

    def test_json(self, tmp_path: Path):
        path = tmp_path / "build.json"
        path.write_text(json.dumps({"source": "catalog", "output": "dist"}), encoding="utf-8")
        assert load_config(path).output == Path("dist")

    def test_env_vars_resolved(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("SAS_TOKEN", "sig123")
        path = tmp_path / "build.yaml"
        path.write_text(
            "source: catalog\n"
            "templates:\n"
            "  provider: http\n"
            "  options:\n"
            "    base_url: https://cdn.example.com\n"
            "    params: {sig: '${SAS_TOKEN}'}\n",
            encoding="utf-8",
        )
        assert load_config(path).templates.options["params"] == {"sig": "sig123"}

    def test_invalid_config_raises(self, tmp_path: Path):
        path = tmp_path / "build.yaml"
        path.write_text("output: dist\n", encoding="utf-8")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_empty_file_raises(self, tmp_path: Path):
        path = tmp_path / "build.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")


# ------------------------------------------------------------------
# Environment variable resolution
# ------------------------------------------------------------------


class TestResolveEnvVars:
    """Tests for ${VAR} placeholder resolution in config data."""

    def test_simple_string_replacement(self, monkeypatch):
        monkeypatch.setenv("MY_TOKEN", "secret123")
        assert resolve_env_vars("Bearer ${MY_TOKEN}") == "Bearer secret123"

    def test_multiple_vars_in_one_string(self, monkeypatch):
        monkeypatch.setenv("HOST", "example.com")
        monkeypatch.setenv("PORT", "8080")
        assert resolve_env_vars("https://${HOST}:${PORT}/t") == "https://example.com:8080/t"

    def test_unset_var_resolves_to_empty(self, monkeypatch, caplog):
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        with caplog.at_level(logging.WARNING, logger="skillbundle_cli.config"):
            result = resolve_env_vars("prefix-${NONEXISTENT_VAR_XYZ}-suffix")
        assert result == "prefix--suffix"
        assert "NONEXISTENT_VAR_XYZ" in caplog.text

    def test_nested_dict_and_list(self, monkeypatch):
        monkeypatch.setenv("SECRET", "s3cret")
        data = {"headers": {"Authorization": "Bearer ${SECRET}"}, "stacks": ["${SECRET}", "x"]}
        result = resolve_env_vars(data)
        assert result["headers"]["Authorization"] == "Bearer s3cret"
        assert result["stacks"] == ["s3cret", "x"]

    def test_non_string_scalars_unchanged(self):
        assert resolve_env_vars(42) == 42
        assert resolve_env_vars(True) is True
        assert resolve_env_vars(None) is None
