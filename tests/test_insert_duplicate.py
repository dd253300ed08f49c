"""
Insertion, duplication, and removal.

Covers:
  - insert_image end-to-end: properties, centered styles, wrapper + paragraph
  - Insertion at the caret and fallback to appending
  - Duplicate then diverge keeps records and nodes independent
  - Removal drops the node and its record and syncs
"""

import pytest

from blog_components.utils import class_list, get_style, has_class

from conftest import assert_bijection, fragment


class TestInsertImage:
    def test_end_to_end_center(self, make_editor):
        manager, root, field = make_editor()
        component_id = manager.insert_image(
            "https://x/img.png", "cat", {"layout": "center"}
        )
        record = manager.get(component_id)
        assert record.type == "image"
        assert record.properties == {
            "src": "https://x/img.png",
            "alt": "cat",
            "width": "100%",
            "layout": "center",
        }

        wrapper = root.find("div", class_="blog-image-wrapper")
        assert record.node is wrapper
        assert wrapper["data-component-id"] == component_id
        img = wrapper.img
        assert get_style(img, "display") == "block"
        assert get_style(img, "margin") == "1rem auto"
        assert class_list(img) == ["blog-image", "editable", "center"]

        paragraph = wrapper.find_next_sibling()
        assert paragraph.name == "p"
        assert paragraph.decode_contents() == "<br/>"

        assert field.value == root.decode_contents()
        assert field.value.index("blog-image-wrapper") < field.value.index("<p><br/></p>")

    def test_defaults(self, make_editor):
        manager, root, field = make_editor()
        component_id = manager.insert_image("a.png")
        record = manager.get(component_id)
        assert record.properties == {
            "src": "a.png",
            "alt": "",
            "width": "100%",
            "layout": "inline",
        }
        img = record.node.img
        assert get_style(img, "max-width") == "100%"
        assert get_style(img, "display") == "block"
        assert get_style(record.node, "margin") == "1rem 0"

    def test_float_with_width(self, make_editor):
        manager, root, field = make_editor()
        component_id = manager.insert_image(
            "a.png", "a", {"layout": "float-right", "width": "40%"}
        )
        img = manager.get(component_id).node.img
        assert get_style(img, "width") == "40%"
        assert get_style(img, "float") == "right"
        assert get_style(img, "display") == "block"
        assert has_class(img, "float-right")

    @pytest.mark.parametrize("layout", ["inline", "figure"])
    def test_plain_layouts_stay_block(self, make_editor, layout):
        manager, root, field = make_editor()
        component_id = manager.insert_image("a.png", "", {"layout": layout})
        img = manager.get(component_id).node.img
        assert get_style(img, "display") == "block"
        assert get_style(img, "margin") == ""
        assert class_list(img) == ["blog-image", "editable"]

    def test_appends_without_caret(self, make_editor):
        manager, root, field = make_editor("<p>first</p>")
        component_id = manager.insert_image("a.png")
        children = root.find_all(recursive=False)
        assert [child.name for child in children] == ["p", "div", "p"]
        assert children[1] is manager.get(component_id).node

    def test_inserts_at_caret(self, make_editor):
        manager, root, field = make_editor("<p>one</p><p>two</p>")
        manager.select(root, 1)
        component_id = manager.insert_image("a.png")
        children = root.find_all(recursive=False)
        assert children[0].get_text() == "one"
        assert children[1] is manager.get(component_id).node
        assert children[2].decode_contents() == "<br/>"
        assert children[3].get_text() == "two"
        assert manager.caret.container is root
        assert manager.caret.offset == 2

    def test_caret_outside_root_falls_back_to_append(self, make_editor):
        manager, root, field = make_editor("<p>one</p>")
        manager.select(fragment("<div><p>elsewhere</p></div>"), 0)
        component_id = manager.insert_image("a.png")
        assert root.find_all(recursive=False)[1] is manager.get(component_id).node

    def test_caret_inside_component_moves_after_it(self, make_editor):
        manager, root, field = make_editor(
            '<div class="blog-layout"><div><figure><figcaption>c</figcaption></figure>'
            "</div><p>text</p></div><p>tail</p>"
        )
        layout = manager.get_all()[0]
        manager.select(layout.node.figcaption, 1)
        component_id = manager.insert_image("a.png")

        wrapper = manager.get(component_id).node
        assert wrapper.parent is root
        assert layout.node.find("div", class_="blog-image-wrapper") is None
        children = root.find_all(recursive=False)
        assert children[0] is layout.node
        assert children[1] is wrapper
        assert children[2].decode_contents() == "<br/>"
        assert children[3].get_text() == "tail"
        assert manager.caret.container is root
        assert manager.caret.offset == 2
        assert_bijection(manager, root)

    def test_clear_selection(self, make_editor):
        manager, root, field = make_editor("<p>one</p><p>two</p>")
        manager.select(root, 0)
        manager.clear_selection()
        component_id = manager.insert_image("a.png")
        assert root.find_all(recursive=False)[2] is manager.get(component_id).node

    def test_invalid_options_raise(self, make_editor):
        manager, root, field = make_editor()
        with pytest.raises(ValueError):
            manager.insert_image("a.png", "", {"layout": "diagonal"})
        with pytest.raises(ValueError):
            manager.insert_image("a.png", "", {"caption": "x"})
        assert len(manager) == 0

    def test_notifies_listeners(self, make_editor):
        manager, root, field = make_editor()
        calls = []
        manager.on_change(lambda cid, rec: calls.append(cid))
        component_id = manager.insert_image("a.png")
        assert calls == [component_id]

    def test_watcher_does_not_register_inserted_parts(self, make_editor):
        manager, root, field = make_editor()
        manager.insert_image("a.png")
        manager.flush()
        assert len(manager) == 1
        assert_bijection(manager, root)


class TestDuplicate:
    def test_duplicate_then_diverge(self, make_editor):
        manager, root, field = make_editor(
            '<figure><img src="a.png" alt=""><figcaption>A</figcaption></figure>'
        )
        original = manager.get_all_by_type("figure")[0]
        assert original.properties["caption"] == "A"

        id2 = manager.duplicate_component(original.id)
        assert id2 is not None and id2 != original.id
        assert manager.update_component(id2, {"caption": "B"})

        copy = manager.get(id2)
        assert original.properties["caption"] == "A"
        assert copy.properties["caption"] == "B"
        assert original.node is not copy.node
        assert original.node.figcaption.get_text() == "A"
        assert copy.node.figcaption.get_text() == "B"
        assert original.node.find_next_sibling() is copy.node
        assert field.value == root.decode_contents()
        assert_bijection(manager, root)

    def test_duplicate_unknown_returns_none(self, make_editor):
        manager, root, field = make_editor()
        assert manager.duplicate_component("missing") is None

    def test_duplicate_survives_flush(self, make_editor):
        manager, root, field = make_editor(
            '<div class="blog-quote"><blockquote>q</blockquote></div>'
        )
        source = manager.get_all()[0]
        manager.duplicate_component(source.id)
        manager.flush()
        assert len(manager.get_all_by_type("quote")) == 2
        assert_bijection(manager, root)


class TestRemove:
    def test_remove_component(self, make_editor):
        manager, root, field = make_editor('<figure></figure><p>tail</p>')
        record = manager.get_all()[0]
        calls = []
        manager.on_change(lambda cid, rec: calls.append(cid))
        assert manager.remove_component(record.id)
        assert manager.get(record.id) is None
        assert root.find("figure") is None
        assert field.value == root.decode_contents() == "<p>tail</p>"
        assert calls == [record.id]

    def test_remove_unknown(self, make_editor):
        manager, root, field = make_editor()
        assert manager.remove_component("missing") is False
