"""Tests for cli module."""

from kindlify.cli import main


class TestHtmlCommand:
    """Tests for the html command."""

    def test_writes_html(self, tmp_path):
        source = tmp_path / "book.md"
        source.write_text("# Title\n- a\n- b", encoding="utf-8")
        output = tmp_path / "book.html"

        assert main(["html", str(source), "-o", str(output)]) == 0
        assert output.read_text(encoding="utf-8") == "<h1>Title</h1><ul><li>a</li><li>b</li></ul>"

    def test_prints_to_stdout(self, tmp_path, capsys):
        source = tmp_path / "book.md"
        source.write_text("**bold**", encoding="utf-8")

        assert main(["html", str(source)]) == 0
        assert "<p><strong>bold</strong></p>" in capsys.readouterr().out

    def test_missing_input(self, tmp_path, capsys):
        assert main(["html", str(tmp_path / "missing.md")]) == 1
        assert "not found" in capsys.readouterr().err


class TestConvertCommand:
    """Tests for the convert command."""

    def test_requires_api_key(self, monkeypatch, capsys):
        monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
        assert main(["convert", "https://x.test/a.pdf"]) == 1
        assert "MISTRAL_API_KEY" in capsys.readouterr().err
