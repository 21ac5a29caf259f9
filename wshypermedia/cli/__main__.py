"""wshm CLI - Main Entry Point.

Commands:
    parse   - Tokenize a frame and show its fields
    listen  - Connect and echo every renderer call
    send    - Connect, send one message and disconnect
"""

import asyncio
import json
import logging
import sys
from typing import Any, Optional, Tuple

import click

from . import __version__, __cli_name__
from .utils.colors import (
    success, error, info, dim, bold,
    section, kv,
    _CHECK, _CROSS, _ARROW,
)
from ..config import ConfigLoader
from ..connection import ConnectionManager
from ..faults import Fault, SecurityFault
from ..parser import MessageParser
from ..renderers.inmemory import Element, InMemoryRenderer
from ..security import validate_element_id


# ============================================================================
# Custom Click help formatter
# ============================================================================


class HypermediaGroup(click.Group):
    """Click group subclass with aligned command listing."""

    def format_commands(
        self, ctx: click.Context, formatter: click.HelpFormatter
    ) -> None:
        commands = []
        for subcommand in self.list_commands(ctx):
            cmd = self.get_command(ctx, subcommand)
            if cmd is None or cmd.hidden:
                continue
            commands.append((subcommand, cmd.get_short_help_str(limit=48)))

        if commands:
            with formatter.section(click.style("Commands", fg="cyan", bold=True)):
                max_len = max(len(c[0]) for c in commands) + 2
                for name, help_text in commands:
                    styled_name = click.style(name.ljust(max_len), fg="green")
                    formatter.write(f"  {styled_name} {help_text}\n")


class EchoRenderer(InMemoryRenderer):
    """Headless renderer that creates elements on demand and echoes every call."""

    def resolve_element(self, element_id: str) -> Optional[Element]:
        element = super().resolve_element(element_id)
        if element is None and validate_element_id(element_id):
            element = self.add_element(element_id)
        return element

    def _record(self, method: str, element: Optional[Element], *args: Any) -> None:
        super()._record(method, element, *args)
        target = f"#{element.id}" if element else "-"
        rendered = ", ".join(repr(a) for a in args)
        click.echo(f"  {click.style(method, fg='green')}({target}{', ' if rendered else ''}{rendered})")


@click.group(cls=HypermediaGroup)
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output (debug logging)')
@click.pass_context
def cli(ctx, verbose: bool):
    """Client for the pipe-delimited hypermedia WebSocket protocol.

    \b
    Quick start:
      wshm parse 'update|content|~<p>A | B</p>~'
      wshm listen ws://localhost:8765
      wshm send ws://localhost:8765 subscribe room 123
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Commands
# ============================================================================

@cli.command('parse')
@click.argument('frame')
@click.option('--escape-char', default='~', show_default=True, help='Escape character')
@click.option('--max-size', type=int, default=1024 * 1024, show_default=True, help='Maximum frame length')
@click.option('--max-parts', type=int, default=100, show_default=True, help='Maximum number of fields')
@click.option('--json', 'as_json', is_flag=True, help='Print the fields as JSON')
def parse_cmd(frame: str, escape_char: str, max_size: int, max_parts: int, as_json: bool):
    """
    Tokenize FRAME and show verb, noun, subject and options.

    Examples:
      wshm parse 'setAttr|btn|disabled|true'
      wshm parse 'update|content|~<p>A | B</p>~' --json
    """
    parser = MessageParser(escape_char=escape_char, max_size=max_size, max_parts=max_parts)

    try:
        message = parser.parse(frame)
    except SecurityFault as fault:
        error(f"  {_CROSS} {fault}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "verb": message.verb,
            "noun": message.noun,
            "subject": message.subject,
            "options": list(message.options),
        }))
        return

    section("Frame")
    kv("Verb", message.verb)
    kv("Noun", message.noun)
    kv("Subject", message.subject)
    for index, option in enumerate(message.options):
        kv(f"Option {index}", option)


@cli.command('listen')
@click.argument('url')
@click.option('--no-reconnect', is_flag=True, help='Do not reconnect after a close')
@click.option('--max-attempts', type=int, help='Maximum reconnection attempts')
@click.option('--reconnect-delay', type=int, help='Base reconnection delay (ms)')
@click.option('--escape-char', type=str, help='Escape character')
@click.option('--env-file', type=click.Path(dir_okay=False), help='Read WSHM_* settings from a .env file')
@click.option('--security-logging', is_flag=True, help='Log rejected frames and payloads')
def listen_cmd(
    url: str,
    no_reconnect: bool,
    max_attempts: Optional[int],
    reconnect_delay: Optional[int],
    escape_char: Optional[str],
    env_file: Optional[str],
    security_logging: bool,
):
    """
    Connect to URL and echo the renderer call for every inbound frame.

    Runs until the connection is closed for good or interrupted.

    Examples:
      wshm listen ws://localhost:8765
      wshm listen wss://example.com/ws --no-reconnect
    """
    overrides = {}
    if no_reconnect:
        overrides['auto_reconnect'] = False
    if max_attempts is not None:
        overrides['max_reconnect_attempts'] = max_attempts
    if reconnect_delay is not None:
        overrides['reconnect_delay'] = reconnect_delay
    if escape_char is not None:
        overrides['escape_char'] = escape_char
    if security_logging:
        overrides['enable_security_logging'] = True

    def on_connect():
        success(f"  {_CHECK} Connected to {url}")

    def on_disconnect():
        dim("  Disconnected")

    def on_error(fault: Fault):
        error(f"  {_CROSS} {fault}")

    def on_message(frame: str):
        dim(f"  {_ARROW} {frame}")

    try:
        config = ConfigLoader.load(env_file=env_file).to_config(
            on_connect=on_connect,
            on_disconnect=on_disconnect,
            on_error=on_error,
            on_message=on_message,
            **overrides,
        )
    except Fault as e:
        error(f"  {_CROSS} {e}")
        sys.exit(1)

    async def _listen():
        client = ConnectionManager(url, EchoRenderer(), config)
        try:
            await client.wait_closed()
        finally:
            await client.disconnect()

    info(f"Listening on {bold(url)} (Ctrl+C to stop)")
    try:
        asyncio.run(_listen())
    except Fault as e:
        error(f"  {_CROSS} {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        dim("  Interrupted")


@cli.command('send')
@click.argument('url')
@click.argument('verb')
@click.argument('noun')
@click.argument('subject', required=False, default='')
@click.argument('options', nargs=-1)
@click.option('--escaped', is_flag=True, help='Bracket the subject with the escape character')
@click.option('--escape-char', default='~', show_default=True, help='Escape character')
@click.option('--timeout', type=float, default=5.0, show_default=True, help='Seconds to wait for the connection')
def send_cmd(
    url: str,
    verb: str,
    noun: str,
    subject: str,
    options: Tuple[str, ...],
    escaped: bool,
    escape_char: str,
    timeout: float,
):
    """
    Connect to URL, send one message and disconnect.

    Examples:
      wshm send ws://localhost:8765 subscribe room 123
      wshm send ws://localhost:8765 chat room 'a | b' --escaped
    """

    async def _send() -> bool:
        client = ConnectionManager(url, InMemoryRenderer(), auto_reconnect=False, escape_char=escape_char)
        try:
            if not await client.wait_open(timeout):
                error(f"  {_CROSS} Could not connect to {url}")
                return False
            if escaped:
                sent = await client.send_escaped(verb, noun, subject, *options)
            else:
                sent = await client.send(client.create_message(verb, noun, subject, *options))
            return sent
        finally:
            await client.disconnect()

    try:
        sent = asyncio.run(_send())
    except Fault as e:
        error(f"  {_CROSS} {e}")
        sys.exit(1)

    if not sent:
        sys.exit(1)
    success(f"  {_CHECK} Sent {verb}|{noun}")


def main():
    """Entry point for `wshm` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
