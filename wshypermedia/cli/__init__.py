"""
wshm - Command line client for the hypermedia wire protocol.

Usage:
    wshm parse <frame>
    wshm listen <url>
    wshm send <url> <verb> <noun> [subject] [options...]
"""

from .. import __version__

__cli_name__ = "wshm"
