"""Component registry and synchronized update engine for the editor surface."""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Set

from bs4 import BeautifulSoup, Tag

from .config import IMAGE_WRAPPER_CLASS, INSERTED_IMAGE_CLASSES, EditorConfig
from .content import (
    detect_component_type,
    extract_image_properties,
    extract_properties,
    find_image,
    is_component_element,
    serialize,
)
from .models import (
    IMAGE_LAYOUTS,
    Caret,
    ChangeListener,
    ComponentError,
    ComponentRecord,
    ComponentType,
    HiddenField,
    MutationBatch,
)
from .patches import (
    apply_image_layout,
    check_keys,
    image_property_updates,
    plan_component_patch,
    plan_image_patch,
    run_writes,
)
from .utils import generate_component_id, is_attached, set_styles
from .watcher import MutationWatcher

logger = logging.getLogger("blog_components")


class ComponentManager:
    """Tracks editor components and keeps markup, registry and output in step.

    Every mutating call patches the tree, writes the serialized root to the
    output field and notifies listeners before it returns. Structural edits
    made by anything else are picked up by the watcher on the next ``flush``.
    """

    def __init__(self, config: Optional[EditorConfig] = None) -> None:
        self.config = config or EditorConfig()
        self.root: Optional[Tag] = None
        self.output: Any = None
        self.caret: Optional[Caret] = None
        self.watcher: Optional[MutationWatcher] = None
        self._components: Dict[str, ComponentRecord] = {}
        self._issued: Set[str] = set()
        self._listeners: List[ChangeListener] = []
        self._factory = BeautifulSoup("", self.config.parser)

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, component_id: object) -> bool:
        return component_id in self._components

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self, root: Tag, output: Any) -> None:
        """Bind the editable root and output field, then seed the registry."""
        if not isinstance(root, Tag):
            raise TypeError(f"Editable root must be a bs4 Tag, got {type(root).__name__}")
        if self.watcher is not None:
            self.watcher.disconnect()
        self.root = root
        self.output = output
        self._components.clear()
        self.caret = None
        self.scan_existing_components()
        self.watcher = MutationWatcher(root, self._reconcile)
        self.watcher.observe()
        self.sync()
        logger.debug("Initialised with %d component(s)", len(self._components))

    def disconnect(self) -> None:
        if self.watcher is not None:
            self.watcher.disconnect()

    def flush(self) -> int:
        """Run pending watcher reconciliation; returns the number of batches."""
        if self.watcher is None:
            return 0
        return self.watcher.flush()

    def _require_root(self) -> Tag:
        if self.root is None:
            raise ComponentError("ComponentManager.init() has not been called")
        return self.root

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _new_id(self) -> str:
        component_id = generate_component_id(self.config.id_prefix, self._issued)
        self._issued.add(component_id)
        return component_id

    def _tracked_record(self, node: Tag) -> Optional[ComponentRecord]:
        component_id = node.get(self.config.marker_attribute)
        if not component_id:
            return None
        record = self._components.get(component_id)
        if record is None or record.node is not node:
            return None
        return record

    def _owner(self, node: Tag) -> Optional[ComponentRecord]:
        for parent in node.parents:
            if parent is self.root:
                break
            record = self._tracked_record(parent)
            if record is not None:
                return record
        return None

    def _outermost_record(self, node: Tag) -> Optional[ComponentRecord]:
        outermost = None
        for tag in (node, *node.parents):
            if tag is self.root:
                break
            record = self._tracked_record(tag)
            if record is not None:
                outermost = record
        return outermost

    def _live_record(self, component_id: str) -> Optional[ComponentRecord]:
        record = self._components.get(component_id)
        if record is None:
            logger.debug("Unknown component %s", component_id)
            return None
        if self.root is None or not is_attached(record.node, self.root):
            logger.debug("Component %s is detached from the editor", component_id)
            return None
        return record

    def _store(
        self,
        component_type: ComponentType,
        properties: Dict[str, Any],
        node: Tag,
    ) -> str:
        component_id = self._new_id()
        node[self.config.marker_attribute] = component_id
        self._components[component_id] = ComponentRecord(
            id=component_id,
            type=component_type,
            properties=properties,
            node=node,
        )
        logger.debug("Registered %s component %s", component_type, component_id)
        return component_id

    def register(self, node: Tag) -> str:
        """Classify ``node``, extract its properties and stamp it with a fresh id."""
        if not isinstance(node, Tag):
            raise TypeError(f"Cannot register {type(node).__name__} as a component")
        existing = self._tracked_record(node)
        if existing is not None:
            return existing.id
        component_type = detect_component_type(node)
        properties = extract_properties(
            node, component_type, self.config.default_image_width
        )
        return self._store(component_type, properties, node)

    def register_image(self, img: Tag) -> str:
        """Register a bare ``<img>`` that is not wrapped in a container component."""
        if not isinstance(img, Tag):
            raise TypeError(f"Cannot register {type(img).__name__} as an image")
        existing = self._tracked_record(img)
        if existing is not None:
            return existing.id
        properties = extract_image_properties(img, self.config.default_image_width)
        return self._store("image", properties, img)

    def _register_tree(self, tags: Iterable[Tag]) -> int:
        tags = list(tags)
        registered = 0
        for tag in tags:
            if not is_component_element(tag):
                continue
            if self._tracked_record(tag) is None and self._owner(tag) is None:
                self.register(tag)
                registered += 1
        for tag in tags:
            if tag.name != "img":
                continue
            if self._tracked_record(tag) is None and self._owner(tag) is None:
                self.register_image(tag)
                registered += 1
        return registered

    def scan_existing_components(self) -> int:
        """Register every untracked component already present in the root."""
        root = self._require_root()
        return self._register_tree(root.find_all(True))

    def get(self, component_id: str) -> Optional[ComponentRecord]:
        return self._components.get(component_id)

    def get_by_node(self, node: Tag) -> Optional[ComponentRecord]:
        """Look up the record whose marker ``node`` carries and which owns ``node``."""
        return self._tracked_record(node)

    def get_all_by_type(self, component_type: ComponentType) -> List[ComponentRecord]:
        return [
            record
            for record in self._components.values()
            if record.type == component_type
        ]

    def get_all(self) -> List[ComponentRecord]:
        return list(self._components.values())

    def describe(self) -> List[Dict[str, Any]]:
        """Plain ``{id, type, properties}`` dicts in registration order."""
        return [
            {"id": record.id, "type": record.type, "properties": record.properties}
            for record in self._components.values()
        ]

    # ------------------------------------------------------------------
    # Synchronisation and notification
    # ------------------------------------------------------------------

    def sync(self) -> None:
        """Copy the root's serialized markup into the output field."""
        if self.root is None or self.output is None:
            return
        markup = serialize(self.root)
        if isinstance(self.output, Tag):
            self.output["value"] = markup
        else:
            self.output.value = markup

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Subscribe to ``(id, record)`` notifications; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, component_id: str, record: ComponentRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(component_id, record)
            except Exception:  # pylint: disable=broad-except
                logger.exception(
                    "Change listener %r failed for component %s", listener, component_id
                )

    def _commit(self, component_id: str, record: ComponentRecord) -> None:
        self.sync()
        self._notify(component_id, record)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_component(self, component_id: str, updates: Mapping[str, Any]) -> bool:
        """Merge ``updates`` into the record and patch its markup."""
        if not isinstance(updates, Mapping):
            raise TypeError("updates must be a mapping of property names to values")
        record = self._live_record(component_id)
        if record is None:
            return False
        writes = plan_component_patch(record, updates, self.config, self._factory)
        if writes is None:
            logger.debug(
                "Component %s is missing markup for %s", component_id, sorted(updates)
            )
            return False
        run_writes(writes)
        record.properties = {**record.properties, **updates}
        self._commit(component_id, record)
        return True

    def update_image(self, component_id: str, updates: Mapping[str, Any]) -> bool:
        """Apply ``src``, ``alt``, ``width`` and ``layout`` to the component's image."""
        if not isinstance(updates, Mapping):
            raise TypeError("updates must be a mapping of property names to values")
        record = self._live_record(component_id)
        if record is None:
            return False
        img = find_image(record.node)
        if img is None:
            logger.debug("Component %s has no image to update", component_id)
            return False
        run_writes(plan_image_patch(img, updates, self.config))
        record.properties = {
            **record.properties,
            **image_property_updates(record.type, updates),
        }
        self._commit(component_id, record)
        return True

    def refresh(self, component_id: str) -> bool:
        """Re-derive the stored properties from the component's current markup."""
        record = self._live_record(component_id)
        if record is None:
            return False
        if record.node.name == "img":
            record.properties = extract_image_properties(
                record.node, self.config.default_image_width
            )
        else:
            record.properties = extract_properties(
                record.node, record.type, self.config.default_image_width
            )
        self._commit(component_id, record)
        return True

    # ------------------------------------------------------------------
    # Insertion, duplication, removal
    # ------------------------------------------------------------------

    def select(self, container: Tag, offset: Optional[int] = None) -> None:
        """Place the caret before child ``offset`` of ``container`` (end by default)."""
        if not isinstance(container, Tag):
            raise TypeError("Caret container must be a bs4 Tag")
        if offset is None:
            offset = len(container.contents)
        if offset < 0:
            raise ValueError(f"Caret offset must be non-negative, got {offset}")
        self.caret = Caret(container=container, offset=offset)

    def clear_selection(self) -> None:
        self.caret = None

    def _caret_in_root(self) -> Optional[Caret]:
        if self.caret is None or self.root is None:
            return None
        if not is_attached(self.caret.container, self.root):
            return None
        owner = self._outermost_record(self.caret.container)
        if owner is not None:
            parent = owner.node.parent
            return Caret(container=parent, offset=parent.index(owner.node) + 1)
        return self.caret

    def insert_image(
        self,
        src: str,
        alt: str = "",
        options: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Insert a wrapped image at the caret (or the end) and register it."""
        root = self._require_root()
        options = dict(options or {})
        check_keys("image", options, ("width", "layout"))
        width = options.get("width") or self.config.default_image_width
        layout = options.get("layout") or "inline"
        if layout not in IMAGE_LAYOUTS:
            raise ValueError(f"Unsupported image layout: {layout!r}")

        component_id = self._new_id()
        wrapper = self._factory.new_tag("div")
        wrapper["class"] = [IMAGE_WRAPPER_CLASS]
        wrapper[self.config.marker_attribute] = component_id
        set_styles(wrapper, margin=self.config.wrapper_margin)

        img = self._factory.new_tag("img")
        img["src"] = src
        img["alt"] = alt
        img["class"] = list(INSERTED_IMAGE_CLASSES)
        apply_image_layout(img, layout, self.config)
        # inserted images always render as blocks, whatever the layout
        set_styles(
            img,
            max_width="100%",
            width=width,
            height="auto",
            cursor="pointer",
            display="block",
        )
        wrapper.append(img)

        caret = self._caret_in_root()
        if caret is not None:
            offset = min(caret.offset, len(caret.container.contents))
            caret.container.insert(offset, wrapper)
        else:
            root.append(wrapper)

        paragraph = self._factory.new_tag("p")
        paragraph.append(self._factory.new_tag("br"))
        wrapper.insert_after(paragraph)
        if caret is not None:
            parent = wrapper.parent
            self.caret = Caret(container=parent, offset=parent.index(wrapper) + 1)

        record = ComponentRecord(
            id=component_id,
            type="image",
            properties={"src": src, "alt": alt, "width": width, "layout": layout},
            node=wrapper,
        )
        self._components[component_id] = record
        logger.debug("Inserted image component %s", component_id)
        self._commit(component_id, record)
        return component_id

    def duplicate_component(self, component_id: str) -> Optional[str]:
        """Clone a component directly after itself under a fresh id."""
        record = self._live_record(component_id)
        if record is None:
            return None
        marker = self.config.marker_attribute
        clone = copy.copy(record.node)
        for tag in clone.find_all(attrs={marker: True}):
            del tag[marker]
        new_id = self._new_id()
        clone[marker] = new_id
        record.node.insert_after(clone)

        duplicate = ComponentRecord(
            id=new_id,
            type=record.type,
            properties=dict(record.properties),
            node=clone,
        )
        self._components[new_id] = duplicate
        logger.debug("Duplicated component %s as %s", component_id, new_id)
        self._commit(new_id, duplicate)
        return new_id

    def remove_component(self, component_id: str) -> bool:
        """Delete the component's node and every record inside it."""
        record = self._live_record(component_id)
        if record is None:
            return False
        node = record.node
        node.extract()
        self._components.pop(component_id, None)
        for tag in node.find_all(attrs={self.config.marker_attribute: True}):
            nested = self._tracked_record(tag)
            if nested is not None:
                self._components.pop(nested.id, None)
        logger.debug("Removed component %s", component_id)
        self._commit(component_id, record)
        return True

    # ------------------------------------------------------------------
    # Watcher reconciliation
    # ------------------------------------------------------------------

    def _drop(self, record: ComponentRecord) -> None:
        self._components.pop(record.id, None)
        logger.debug("Dropped %s component %s (node removed)", record.type, record.id)

    def _reconcile(self, batch: MutationBatch) -> None:
        root = self._require_root()
        for node in batch.removed:
            record = self._tracked_record(node)
            if record is not None and not is_attached(node, root):
                self._drop(record)
        # Nodes inserted and removed between two flushes never reach a batch.
        for record in list(self._components.values()):
            if not is_attached(record.node, root):
                self._drop(record)

        registered = 0
        for node in batch.added:
            if is_attached(node, root):
                registered += self._register_tree([node, *node.find_all(True)])
        if registered:
            logger.debug("Watcher registered %d component(s)", registered)
        self.sync()


def create_component_manager(
    root: Tag,
    output: Any = None,
    config: Optional[EditorConfig] = None,
) -> ComponentManager:
    """Build a manager for one editing session and bind it to ``root``."""
    manager = ComponentManager(config)
    manager.init(root, output if output is not None else HiddenField())
    return manager


# ----------------------------------------------------------------------
# Page-level accessor for inline toolbar scripts
# ----------------------------------------------------------------------

_installed: Optional[ComponentManager] = None


def install_global(manager: ComponentManager) -> ComponentManager:
    global _installed
    _installed = manager
    return manager


def uninstall_global() -> None:
    global _installed
    _installed = None


def current_manager() -> Optional[ComponentManager]:
    return _installed


@contextmanager
def global_manager(manager: ComponentManager) -> Iterator[ComponentManager]:
    """Expose ``manager`` as the page-level instance for the duration of the block."""
    global _installed
    previous = _installed
    _installed = manager
    try:
        yield manager
    finally:
        _installed = previous
