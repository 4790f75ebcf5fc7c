"""Project model: pages and shared component definitions.

The model references boxes by id only. It never reads or writes the
BoxTree; keeping ``Box.shared_component_id`` and the box store in step
with the relations held here is the job of the composite operations in
``lattice.editor``.
"""

import logging
from collections.abc import Iterable

from lattice.ir import BoxSpec, Direction, Page, SharedComponent, new_id

logger = logging.getLogger(__name__)

DEFAULT_PAGE_ID = "page_home"


def default_page() -> Page:
    """The page every new project starts with."""
    return Page(id=DEFAULT_PAGE_ID, name="Home", route="/")


class ProjectModel:
    """Mutable store of pages and shared components.

    Unknown ids are no-ops everywhere, mirroring BoxTree.

    Args:
        pages: Existing pages in display order. A default Home page is
            created when None.
        shared_components: Existing shared components keyed by id.
    """

    def __init__(
        self,
        pages: Iterable[Page] | None = None,
        shared_components: dict[str, SharedComponent] | None = None,
    ):
        self._pages: dict[str, Page] = {}
        for page in pages if pages is not None else [default_page()]:
            self._pages[page.id] = page
        self._shared: dict[str, SharedComponent] = dict(shared_components or {})

    # =========================================================================
    # Pages
    # =========================================================================

    @property
    def pages(self) -> list[Page]:
        """Pages in display order."""
        return list(self._pages.values())

    def get_page(self, page_id: str) -> Page | None:
        return self._pages.get(page_id)

    def add_page(
        self,
        name: str,
        route: str | None = None,
        root_direction: Direction = Direction.COLUMN,
    ) -> str:
        page_id = new_id("page_")
        while page_id in self._pages:
            page_id = new_id("page_")
        self._pages[page_id] = Page(
            id=page_id, name=name, route=route, root_direction=root_direction
        )
        return page_id

    def remove_page(self, page_id: str) -> Page | None:
        """Remove a page and return it so the caller can cascade its boxes."""
        page = self._pages.pop(page_id, None)
        if page is not None:
            logger.debug(f"Removed page {page_id} ({len(page.box_ids)} root box(es))")
        return page

    def rename_page(self, page_id: str, name: str) -> bool:
        page = self._pages.get(page_id)
        if page is None:
            return False
        page.name = name
        return True

    def update_page(
        self,
        page_id: str,
        *,
        name: str | None = None,
        route: str | None = None,
        root_direction: Direction | None = None,
    ) -> bool:
        page = self._pages.get(page_id)
        if page is None:
            return False
        if name is not None:
            page.name = name
        if route is not None:
            page.route = route or None
        if root_direction is not None:
            page.root_direction = root_direction
        return True

    def add_box_to_page(
        self, page_id: str, box_id: str, index: int | None = None
    ) -> bool:
        """Append (or insert at ``index``) a root box id on a page."""
        page = self._pages.get(page_id)
        if page is None:
            return False
        if box_id in page.box_ids:
            page.box_ids.remove(box_id)
        if index is None:
            page.box_ids.append(box_id)
        else:
            index = max(0, min(index, len(page.box_ids)))
            page.box_ids.insert(index, box_id)
        return True

    def remove_box_from_page(self, page_id: str, box_id: str) -> bool:
        page = self._pages.get(page_id)
        if page is None or box_id not in page.box_ids:
            return False
        page.box_ids.remove(box_id)
        return True

    def page_for_box(self, box_id: str) -> Page | None:
        """The page listing ``box_id`` among its roots, if any."""
        for page in self._pages.values():
            if box_id in page.box_ids:
                return page
        return None

    # =========================================================================
    # Shared Components
    # =========================================================================

    @property
    def shared_components(self) -> dict[str, SharedComponent]:
        return self._shared

    def get_shared_component(self, component_id: str | None) -> SharedComponent | None:
        if component_id is None:
            return None
        return self._shared.get(component_id)

    def create_shared_component_from_box(
        self, name: str, spec: BoxSpec | None, box_id: str
    ) -> str:
        """Create a component seeded with one instance.

        The caller must set ``shared_component_id`` on the box itself.
        """
        component = SharedComponent(
            name=name,
            spec=spec.model_copy(deep=True) if spec is not None else BoxSpec(),
            instance_ids={box_id},
        )
        self._shared[component.id] = component
        logger.debug(f"Created shared component {component.id} ({name!r}) from {box_id}")
        return component.id

    def add_shared_component(self, component: SharedComponent) -> str:
        self._shared[component.id] = component
        return component.id

    def remove_shared_component(self, component_id: str) -> SharedComponent | None:
        """Remove a component and return it so the caller can clear back-references."""
        return self._shared.pop(component_id, None)

    def update_shared_component(
        self,
        component_id: str,
        *,
        name: str | None = None,
        spec: BoxSpec | None = None,
        latest_code: str | None = None,
    ) -> bool:
        component = self._shared.get(component_id)
        if component is None:
            return False
        if name is not None:
            component.name = name
        if spec is not None:
            component.spec = spec
        if latest_code is not None:
            component.latest_code = latest_code
        return True

    def add_instance(self, component_id: str, box_id: str) -> bool:
        component = self._shared.get(component_id)
        if component is None:
            return False
        component.instance_ids.add(box_id)
        return True

    def remove_instance(self, component_id: str, box_id: str) -> bool:
        component = self._shared.get(component_id)
        if component is None or box_id not in component.instance_ids:
            return False
        component.instance_ids.discard(box_id)
        return True

    def detach_box(self, box_id: str) -> list[str]:
        """Drop ``box_id`` from every component's instance set.

        Returns:
            Ids of components that listed the box.
        """
        touched = []
        for component in self._shared.values():
            if box_id in component.instance_ids:
                component.instance_ids.discard(box_id)
                touched.append(component.id)
        return touched


__all__ = ["ProjectModel", "DEFAULT_PAGE_ID", "default_page"]
