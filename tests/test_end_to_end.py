"""
End-to-end: frames fed through a live in-memory connection reach the renderer.
"""

import logging

import pytest

from wshypermedia.connection import ConnectionManager
from wshypermedia.parser import parse_message

from conftest import URL, eventually


async def run_frames(renderer, factory, frames, expected=None, **options):
    """Open a connection, feed ``frames``, wait until ``expected`` reached on_message."""
    seen = []
    client = ConnectionManager(URL, renderer, transport_factory=factory, on_message=seen.append, **options)
    assert await client.wait_open(1)
    for frame in frames:
        factory.current.feed(frame)
    await eventually(lambda: len(seen) == (len(frames) if expected is None else expected))
    await client.disconnect()
    return seen


class TestScenarios:

    @pytest.mark.asyncio
    async def test_update(self, renderer, factory):
        await run_frames(renderer, factory, ["update|content|<p>Hi</p>"])
        assert renderer.calls == [("set_inner_html", "content", ("<p>Hi</p>",))]

    @pytest.mark.asyncio
    async def test_add_class(self, renderer, factory):
        await run_frames(renderer, factory, ["addClass|btn|a b"])
        assert renderer.calls == [("add_classes", "btn", (["a", "b"],))]

    @pytest.mark.asyncio
    async def test_set_attr(self, renderer, factory):
        await run_frames(renderer, factory, ["setAttr|btn|disabled|true"])
        assert renderer.calls == [("set_attribute", "btn", ("disabled", "true"))]

    @pytest.mark.asyncio
    async def test_remove(self, renderer, factory):
        await run_frames(renderer, factory, ["remove|old|"])
        assert renderer.calls == [("remove_element", "old", ())]

    @pytest.mark.asyncio
    async def test_remove_missing_element(self, renderer, factory, caplog):
        del renderer.elements["old"]
        with caplog.at_level(logging.WARNING, logger="wshypermedia.actions"):
            await run_frames(renderer, factory, ["remove|old|"])
        assert renderer.calls == []
        assert "Element not found: old" in caplog.text

    @pytest.mark.asyncio
    async def test_escaped_subject(self, renderer, factory):
        frame = "update|content|~<p>A | B</p>~"
        msg = parse_message(frame)
        assert (msg.noun, msg.subject) == ("content", "<p>A | B</p>")

        await run_frames(renderer, factory, [frame])
        assert renderer.elements["content"].inner_html == "<p>A | B</p>"

    @pytest.mark.asyncio
    async def test_unknown_verb_forwarded(self, renderer, factory):
        seen = await run_frames(renderer, factory, ["subscribe|room|123"])
        assert seen == ["subscribe|room|123"]
        assert renderer.calls == []


class TestMixedStream:

    @pytest.mark.asyncio
    async def test_bad_frames_do_not_stop_processing(self, renderer, factory):
        frames = [
            "update|content|first",
            "update|#bad id|x",
            "update|missing|x",
            'trigger|btn|click|{"__proto__": {"polluted": true}}',
            "a|" * 200,
            "append|content|-last",
        ]
        seen = await run_frames(renderer, factory, frames, expected=5)
        assert renderer.elements["content"].inner_html == "first-last"
        assert "a|a|" not in "".join(seen)
        assert not hasattr(renderer.elements["btn"].events[0], "polluted")

    @pytest.mark.asyncio
    async def test_custom_escape_char(self, renderer, factory):
        await run_frames(renderer, factory, ["update|content|^a | b^"], escape_char="^")
        assert renderer.elements["content"].inner_html == "a | b"
