"""
Command-line interface.

Covers:
  - scan prints components as JSON (and is the default command)
  - stamp writes markup with component ids
  - insert-image appends an image component
  - Missing files and unknown roots exit with status 1
  - Without --root, full documents are edited inside <body>
"""

import json

from bs4 import BeautifulSoup

from blog_components.cli import main

PAGE = (
    "<html><body><main>"
    '<div id="editor"><p>Hello</p>'
    '<figure><img src="a.png" alt="A"><figcaption>Cap</figcaption></figure>'
    "</div></main></body></html>"
)


def write_page(tmp_path):
    path = tmp_path / "post.html"
    path.write_text(PAGE, encoding="utf-8")
    return path


class TestScan:
    def test_scan_prints_json(self, tmp_path, capsys):
        path = write_page(tmp_path)
        assert main(["scan", str(path), "--root", "#editor"]) == 0
        components = json.loads(capsys.readouterr().out)
        assert len(components) == 1
        assert components[0]["type"] == "figure"
        assert components[0]["properties"] == {"src": "a.png", "alt": "A", "caption": "Cap"}
        assert components[0]["id"].startswith("cmp-")

    def test_scan_is_default_command(self, tmp_path, capsys):
        path = write_page(tmp_path)
        assert main([str(path)]) == 0
        assert json.loads(capsys.readouterr().out)[0]["type"] == "figure"


class TestStampAndInsert:
    def test_stamp_writes_markers(self, tmp_path):
        path = write_page(tmp_path)
        output = tmp_path / "stamped.html"
        assert main(["stamp", str(path), "--root", "#editor", "--output", str(output)]) == 0
        soup = BeautifulSoup(output.read_text(encoding="utf-8"), "html.parser")
        assert soup.figure["data-component-id"].startswith("cmp-")
        assert soup.find("main") is not None

    def test_insert_image(self, tmp_path):
        path = write_page(tmp_path)
        output = tmp_path / "inserted.html"
        exit_code = main(
            [
                "insert-image",
                str(path),
                "--root",
                "#editor",
                "--src",
                "new.png",
                "--alt",
                "new",
                "--layout",
                "center",
                "--output",
                str(output),
            ]
        )
        assert exit_code == 0
        soup = BeautifulSoup(output.read_text(encoding="utf-8"), "html.parser")
        editor = soup.find(id="editor")
        wrapper = editor.find("div", class_="blog-image-wrapper")
        assert wrapper.img["src"] == "new.png"
        assert "center" in wrapper.img["class"]
        assert wrapper.find_next_sibling().name == "p"


class TestErrors:
    def test_missing_file(self, tmp_path, capsys):
        assert main(["scan", str(tmp_path / "missing.html")]) == 1
        assert capsys.readouterr().out == ""

    def test_unknown_root(self, tmp_path):
        path = write_page(tmp_path)
        assert main(["scan", str(path), "--root", "#nowhere"]) == 1


class TestDefaultRoot:
    def test_insert_image_into_full_document_lands_in_body(self, tmp_path):
        path = tmp_path / "post.html"
        path.write_text("<html><body><p>x</p></body></html>", encoding="utf-8")
        output = tmp_path / "out.html"
        assert main(["insert-image", str(path), "--src", "a.png", "--output", str(output)]) == 0

        written = output.read_text(encoding="utf-8")
        assert written.endswith("</body></html>")
        soup = BeautifulSoup(written, "html.parser")
        body_children = soup.body.find_all(recursive=False)
        assert [child.name for child in body_children] == ["p", "div", "p"]
        assert body_children[1].img["src"] == "a.png"
        assert soup.html.find_all(recursive=False) == [soup.body]
