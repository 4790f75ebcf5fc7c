"""Unit tests for core data models."""

import pytest
from pydantic import ValidationError

from lattice.ir import (
    AIConfig,
    Box,
    BoxSpec,
    Direction,
    Framework,
    GenerationVersion,
    LatticeProject,
    Page,
    ProjectContext,
    SharedComponent,
    format_number,
    new_id,
)


class TestBox:
    """Tests for Box defaults and serialization."""

    @pytest.mark.unit
    def test_defaults(self):
        box = Box()
        assert box.width == 320
        assert box.height == 200
        assert box.direction == "column"
        assert box.parent_id is None
        assert box.is_root
        assert box.spec is None

    @pytest.mark.unit
    def test_enum_stored_as_value(self):
        """Enum fields hold plain strings after assignment."""
        box = Box()
        box.direction = Direction.ROW
        assert box.direction == "row"
        assert type(box.direction) is str

    @pytest.mark.unit
    def test_camel_case_json(self):
        box = Box(id="b1", parent_id="p1", shared_component_id="sc1")
        data = box.to_json_dict()
        assert data["parentId"] == "p1"
        assert data["sharedComponentId"] == "sc1"
        assert data["childIds"] == []

    @pytest.mark.unit
    def test_accepts_camel_case_input(self):
        box = Box.model_validate({"id": "b1", "parentId": "p", "childIds": ["c"]})
        assert box.parent_id == "p"
        assert box.child_ids == ["c"]

    @pytest.mark.unit
    def test_invalid_direction_rejected(self):
        with pytest.raises(ValidationError):
            Box(direction="diagonal")


class TestIdentifiers:
    """Tests for id generation."""

    @pytest.mark.unit
    def test_unique(self):
        assert len({new_id() for _ in range(100)}) == 100

    @pytest.mark.unit
    def test_prefixed(self):
        page_id = new_id("page_")
        assert page_id.startswith("page_")
        assert len(page_id) == len("page_") + 8

    @pytest.mark.unit
    def test_page_default_id(self):
        assert Page(name="About").id.startswith("page_")


class TestGenerationVersion:
    """Tests for immutable versions."""

    @pytest.mark.unit
    def test_create(self):
        version = GenerationVersion.create("code", "prompt", "openai", "gpt-4o")
        assert version.code == "code"
        assert version.provider == "openai"
        assert version.timestamp.tzinfo is not None

    @pytest.mark.unit
    def test_frozen(self):
        version = GenerationVersion.create("code", "prompt", "openai", "gpt-4o")
        with pytest.raises(ValidationError):
            version.code = "changed"


class TestAIConfig:
    """Tests for secret handling on AIConfig."""

    @pytest.mark.unit
    def test_key_hidden_in_repr(self):
        config = AIConfig(api_key="sk-secret-value")
        assert "sk-secret-value" not in repr(config)
        assert config.secret() == "sk-secret-value"

    @pytest.mark.unit
    def test_masked(self):
        config = AIConfig(api_key="sk-secret-value").masked()
        assert config.api_key is None
        assert config.has_api_key is True

    @pytest.mark.unit
    def test_masked_without_key(self):
        assert AIConfig().masked().has_api_key is False

    @pytest.mark.unit
    def test_empty_key_is_none(self):
        assert AIConfig(api_key="").secret() is None


class TestProjectContext:
    """Tests for project context defaults."""

    @pytest.mark.unit
    def test_defaults(self):
        context = ProjectContext()
        assert context.name == "Untitled Project"
        assert context.framework == Framework.REACT
        assert context.ui_library == "tailwind"
        assert context.design_tokens.primary_color == "#2563eb"
        assert context.design_tokens.border_radius == "md"
        assert context.style_tone == "minimalist"
        assert context.constraints == []


class TestLatticeProject:
    """Tests for project snapshot serialization."""

    @pytest.mark.unit
    def test_json_round_trip(self):
        box = Box(id="b1", label="Hero", spec=BoxSpec(intent="welcome"))
        shared = SharedComponent(id="sc1", name="Card", instance_ids={"b1"})
        project = LatticeProject(
            id="p",
            pages=[Page(id="page_home", name="Home", route="/", box_ids=["b1"])],
            boxes={"b1": box},
            shared_components={"sc1": shared},
        )
        restored = LatticeProject.model_validate_json(project.model_dump_json(by_alias=True))
        assert restored == project
        assert "sharedComponents" in project.to_json_dict()


class TestFormatNumber:
    """Tests for coordinate formatting."""

    @pytest.mark.unit
    def test_whole_numbers(self):
        assert format_number(0) == "0"
        assert format_number(260.0) == "260"

    @pytest.mark.unit
    def test_fractions(self):
        assert format_number(12.5) == "12.5"
