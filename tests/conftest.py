"""
Shared fixtures for the component manager tests.

Every editor is a ``<div id="editor">`` parsed with html.parser and bound to a
fresh HiddenField, so tests can compare the field with the root's markup.
"""

import pytest
from bs4 import BeautifulSoup

from blog_components.manager import create_component_manager
from blog_components.models import HiddenField


def build_editor(html="", config=None):
    soup = BeautifulSoup(f'<div id="editor">{html}</div>', "html.parser")
    root = soup.find(id="editor")
    field = HiddenField()
    manager = create_component_manager(root, field, config)
    return manager, root, field


def fragment(html):
    """Parse a detached fragment and return its first element."""
    return BeautifulSoup(html, "html.parser").find(True)


def assert_bijection(manager, root):
    marker = manager.config.marker_attribute
    marked = root.find_all(attrs={marker: True})
    ids = [tag[marker] for tag in marked]
    assert len(ids) == len(set(ids)), "a marker id appears on more than one node"

    records = {record.id: record for record in manager.get_all()}
    assert set(ids) == set(records)
    for tag in marked:
        assert records[tag[marker]].node is tag


@pytest.fixture
def make_editor():
    return build_editor
