"""
wshm command line.
"""

import json

from click.testing import CliRunner

from wshypermedia.cli.__main__ import EchoRenderer, cli


def invoke(*args):
    return CliRunner().invoke(cli, list(args), obj={})


# ============================================================================
# parse
# ============================================================================

class TestParseCommand:

    def test_fields_shown(self):
        result = invoke("parse", "setAttr|btn|disabled|true")
        assert result.exit_code == 0
        assert "setAttr" in result.output
        assert "btn" in result.output
        assert "disabled" in result.output
        assert "Option 0" in result.output

    def test_json_output(self):
        result = invoke("parse", "update|content|~<p>A | B</p>~", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "verb": "update",
            "noun": "content",
            "subject": "<p>A | B</p>",
            "options": [],
        }

    def test_custom_escape_char(self):
        result = invoke("parse", "update|content|^a|b^", "--escape-char", "^", "--json")
        assert json.loads(result.output)["subject"] == "a|b"

    def test_too_many_parts(self):
        result = invoke("parse", "a|b|c|d", "--max-parts", "3")
        assert result.exit_code == 1
        assert "WS_TOO_MANY_PARTS" in result.output
        assert "\u2717" in result.output

    def test_too_large(self):
        result = invoke("parse", "update|content|xxxx", "--max-size", "5")
        assert result.exit_code == 1
        assert "WS_MESSAGE_TOO_LARGE" in result.output


# ============================================================================
# send / listen
# ============================================================================

class TestConnectCommands:

    def test_send_invalid_url(self):
        result = invoke("send", "http://example.com", "subscribe", "room", "123")
        assert result.exit_code == 1
        assert "WS_INVALID_URL" in result.output

    def test_listen_invalid_url(self):
        result = invoke("listen", "http://example.com")
        assert result.exit_code == 1
        assert "WS_INVALID_URL" in result.output

    def test_listen_invalid_option(self):
        result = invoke("listen", "ws://localhost:1", "--escape-char", "|")
        assert result.exit_code == 1
        assert "escape_char" in result.output

    def test_help_lists_commands(self):
        result = invoke("--help")
        assert result.exit_code == 0
        for name in ("parse", "listen", "send"):
            assert name in result.output

    def test_version(self):
        result = invoke("--version")
        assert result.exit_code == 0
        assert "wshm" in result.output


class TestEchoRenderer:

    def test_creates_elements_on_demand(self, capsys):
        renderer = EchoRenderer()
        el = renderer.resolve_element("anything")
        renderer.set_inner_html(el, "<p>x</p>")
        assert "set_inner_html(#anything, '<p>x</p>')" in capsys.readouterr().out

    def test_invalid_ids_not_created(self):
        assert EchoRenderer().resolve_element("bad id") is None
