"""Tests for the lattice command line."""

import json
import sys

import pytest

from lattice import __main__ as cli
from lattice.host import FileWorkspace
from lattice.ir import AIConfig, Box, BoxSpec, LatticeProject, Page, ProjectContext
from lattice.llm import AIService


def _openai_delta(text: str) -> dict:
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


@pytest.fixture
def project() -> LatticeProject:
    return LatticeProject(
        context=ProjectContext(name="Demo"),
        pages=[Page(id="page_home", name="Home", route="/", box_ids=["hero"])],
        boxes={"hero": Box(id="hero", label="Hero", spec=BoxSpec(intent="Big headline"))},
    )


@pytest.fixture
def project_file(tmp_path, project):
    path = tmp_path / "project.json"
    path.write_text(json.dumps(project.to_json_dict()), encoding="utf-8")
    return path


@pytest.fixture
def config_dir(tmp_path, clean_provider_env):
    return tmp_path / "config"


# =============================================================================
# Tree / Prompt
# =============================================================================


class TestTreeCommand:
    """Tests for the tree command."""

    @pytest.mark.unit
    def test_prints_first_page(self, project_file, capsys):
        assert cli.handle_tree_command([str(project_file)]) == 0
        assert capsys.readouterr().out == "Home (/)\n└── Hero - Big headline\n"

    @pytest.mark.unit
    def test_reads_workspace_directory(self, tmp_path, project, capsys):
        FileWorkspace(tmp_path).save_project(project)

        assert cli.handle_tree_command([str(tmp_path), "--page", "Home"]) == 0
        assert "Hero" in capsys.readouterr().out

    @pytest.mark.unit
    def test_unknown_page(self, project_file):
        assert cli.handle_tree_command([str(project_file), "--page", "Nope"]) == 1

    @pytest.mark.unit
    def test_missing_project(self, tmp_path):
        assert cli.handle_tree_command([str(tmp_path / "missing.json")]) == 1

    @pytest.mark.unit
    def test_no_arguments_prints_help(self):
        assert cli.handle_tree_command([]) == 1


class TestPromptCommand:
    """Tests for the prompt command."""

    @pytest.mark.unit
    def test_page_prompts(self, project_file, capsys):
        assert cli.handle_prompt_command(["page", str(project_file)]) == 0
        out = capsys.readouterr().out
        assert "## System Prompt" in out
        assert "## User Prompt" in out
        assert "Hero" in out

    @pytest.mark.unit
    def test_single_part(self, project_file, capsys):
        assert cli.handle_prompt_command(["box", str(project_file), "hero", "--part", "system"]) == 0
        assert "## User Prompt" not in capsys.readouterr().out

    @pytest.mark.unit
    def test_unknown_box(self, project_file):
        assert cli.handle_prompt_command(["box", str(project_file), "ghost"]) == 1

    @pytest.mark.unit
    def test_no_subcommand(self):
        assert cli.handle_prompt_command([]) == 1


# =============================================================================
# Generate
# =============================================================================


class TestGenerateCommand:
    """Tests for the generate command against a scripted provider."""

    @pytest.fixture
    def service_with(self, monkeypatch):
        def _install(transport):
            monkeypatch.setattr(
                cli,
                "AIService",
                lambda config_dir: AIService(config_dir, transport=transport),
            )

        return _install

    @pytest.mark.unit
    def test_generates_box_and_saves(
        self, tmp_path, project_file, config_dir, scripted, sse, service_with, capsys
    ):
        AIService(config_dir).set_config(AIConfig(provider="openai", api_key="sk-test1234"))
        api = scripted(sse([_openai_delta("<div>"), _openai_delta("</div>")]))
        service_with(api.transport)
        output = tmp_path / "Hero.tsx"

        code = cli.handle_generate_command(
            [
                "box",
                str(project_file),
                "hero",
                "--config-dir",
                str(config_dir),
                "--model",
                "gpt-4o-mini",
                "-o",
                str(output),
                "--save",
            ]
        )

        assert code == 0
        assert "<div></div>" in capsys.readouterr().out
        assert output.read_text(encoding="utf-8") == "<div></div>\n"
        assert api.payload(0)["model"] == "gpt-4o-mini"

        saved = LatticeProject.model_validate_json(project_file.read_text(encoding="utf-8"))
        assert "hero" in saved.generations

    @pytest.mark.unit
    def test_missing_key_fails(
        self, tmp_path, project_file, config_dir, scripted, service_with
    ):
        api = scripted()
        service_with(api.transport)
        output = tmp_path / "Hero.tsx"

        code = cli.handle_generate_command(
            ["page", str(project_file), "--config-dir", str(config_dir), "-o", str(output)]
        )

        assert code == 1
        assert not output.exists()
        assert api.requests == []

    @pytest.mark.unit
    def test_unknown_box(self, project_file, config_dir):
        code = cli.handle_generate_command(
            ["box", str(project_file), "ghost", "--config-dir", str(config_dir)]
        )
        assert code == 1


# =============================================================================
# Config / Providers
# =============================================================================


class TestConfigCommand:
    """Tests for the config and providers commands."""

    @pytest.mark.unit
    def test_show_defaults(self, config_dir, capsys):
        assert cli.handle_config_command(["show", "--config-dir", str(config_dir)]) == 0
        out = capsys.readouterr().out
        assert "Provider:     openai" in out
        assert "API key:      not set" in out

    @pytest.mark.unit
    def test_switching_provider_uses_its_default_model(self, config_dir, capsys):
        code = cli.handle_config_command(
            ["set", "--provider", "anthropic", "--config-dir", str(config_dir)]
        )

        assert code == 0
        default_model = AIService(config_dir).get_provider("anthropic").default_model
        out = capsys.readouterr().out
        assert "Provider:     anthropic" in out
        assert f"Model:        {default_model}" in out

    @pytest.mark.unit
    def test_api_key_is_stored_but_never_printed(self, config_dir, monkeypatch, capsys):
        monkeypatch.setattr(cli.getpass, "getpass", lambda prompt: "sk-secret-9999")

        code = cli.handle_config_command(["set", "--api-key", "--config-dir", str(config_dir)])

        assert code == 0
        out = capsys.readouterr().out
        assert "API key:      configured" in out
        assert "sk-secret-9999" not in out
        assert AIService(config_dir).get_config().secret() == "sk-secret-9999"

    @pytest.mark.unit
    def test_unknown_provider(self, config_dir):
        code = cli.handle_config_command(
            ["set", "--provider", "nope", "--config-dir", str(config_dir)]
        )
        assert code == 1

    @pytest.mark.unit
    def test_providers_lists_active(self, config_dir, capsys):
        assert cli.handle_providers_command(["--config-dir", str(config_dir)]) == 0
        out = capsys.readouterr().out
        assert "* openai" in out
        assert "anthropic" in out


class TestMain:
    """Tests for top-level dispatch."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "argv,expected",
        [
            (["lattice"], 1),
            (["lattice", "--help"], 0),
            (["lattice", "bogus"], 1),
        ],
    )
    def test_dispatch(self, monkeypatch, argv, expected):
        monkeypatch.setattr(sys, "argv", argv)
        assert cli.main() == expected
