"""Tests for the ProjectModel."""

import pytest

from lattice.ir import BoxSpec, Page

from .lib import DEFAULT_PAGE_ID, ProjectModel


@pytest.fixture
def model() -> ProjectModel:
    return ProjectModel()


class TestPages:
    """Tests for page operations."""

    @pytest.mark.unit
    def test_default_page(self, model):
        pages = model.pages
        assert len(pages) == 1
        assert pages[0].id == DEFAULT_PAGE_ID
        assert pages[0].name == "Home"
        assert pages[0].route == "/"

    @pytest.mark.unit
    def test_explicit_empty_pages(self):
        assert ProjectModel(pages=[]).pages == []

    @pytest.mark.unit
    def test_add_page(self, model):
        page_id = model.add_page("About", route="/about")
        page = model.get_page(page_id)
        assert page_id.startswith("page_")
        assert page.name == "About"
        assert [p.id for p in model.pages] == [DEFAULT_PAGE_ID, page_id]

    @pytest.mark.unit
    def test_remove_page_returns_it(self, model):
        model.add_box_to_page(DEFAULT_PAGE_ID, "b1")
        page = model.remove_page(DEFAULT_PAGE_ID)
        assert isinstance(page, Page)
        assert page.box_ids == ["b1"]
        assert model.pages == []
        assert model.remove_page(DEFAULT_PAGE_ID) is None

    @pytest.mark.unit
    def test_rename_and_update(self, model):
        assert model.rename_page(DEFAULT_PAGE_ID, "Start")
        assert model.update_page(DEFAULT_PAGE_ID, route="/start", root_direction="row")
        page = model.get_page(DEFAULT_PAGE_ID)
        assert (page.name, page.route, page.root_direction) == ("Start", "/start", "row")
        assert not model.rename_page("missing", "x")

    @pytest.mark.unit
    def test_box_membership(self, model):
        model.add_box_to_page(DEFAULT_PAGE_ID, "a")
        model.add_box_to_page(DEFAULT_PAGE_ID, "b")
        model.add_box_to_page(DEFAULT_PAGE_ID, "c", index=0)
        assert model.get_page(DEFAULT_PAGE_ID).box_ids == ["c", "a", "b"]
        assert model.page_for_box("a").id == DEFAULT_PAGE_ID
        assert model.remove_box_from_page(DEFAULT_PAGE_ID, "a")
        assert model.page_for_box("a") is None
        assert not model.add_box_to_page("missing", "z")

    @pytest.mark.unit
    def test_add_box_twice_moves_it(self, model):
        model.add_box_to_page(DEFAULT_PAGE_ID, "a")
        model.add_box_to_page(DEFAULT_PAGE_ID, "b")
        model.add_box_to_page(DEFAULT_PAGE_ID, "a")
        assert model.get_page(DEFAULT_PAGE_ID).box_ids == ["b", "a"]


class TestSharedComponents:
    """Tests for shared component operations."""

    @pytest.mark.unit
    def test_create_from_box_seeds_instance(self, model):
        spec = BoxSpec(intent="card")
        component_id = model.create_shared_component_from_box("Card", spec, "b1")
        component = model.get_shared_component(component_id)
        assert component.name == "Card"
        assert component.instance_ids == {"b1"}
        assert component.spec == spec
        assert component.spec is not spec

    @pytest.mark.unit
    def test_create_without_spec(self, model):
        component_id = model.create_shared_component_from_box("Card", None, "b1")
        assert model.get_shared_component(component_id).spec == BoxSpec()

    @pytest.mark.unit
    def test_instances(self, model):
        component_id = model.create_shared_component_from_box("Card", None, "b1")
        assert model.add_instance(component_id, "b2")
        assert model.remove_instance(component_id, "b1")
        assert model.get_shared_component(component_id).instance_ids == {"b2"}
        assert not model.remove_instance(component_id, "b1")
        assert not model.add_instance("missing", "b3")

    @pytest.mark.unit
    def test_detach_box(self, model):
        first = model.create_shared_component_from_box("A", None, "b1")
        model.create_shared_component_from_box("B", None, "b2")
        assert model.detach_box("b1") == [first]
        assert model.get_shared_component(first).instance_ids == set()

    @pytest.mark.unit
    def test_update_and_remove(self, model):
        component_id = model.create_shared_component_from_box("A", None, "b1")
        assert model.update_shared_component(component_id, latest_code="<div/>")
        assert model.get_shared_component(component_id).latest_code == "<div/>"
        removed = model.remove_shared_component(component_id)
        assert removed.instance_ids == {"b1"}
        assert model.get_shared_component(component_id) is None
        assert not model.update_shared_component(component_id, name="B")
