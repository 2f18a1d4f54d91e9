# mcinfo - A Minecraft server status lookup
# Copyright (C) 2016-2023 Lloyd Dilley, Felix Ern (MindSolve)
# http://www.dilley.me/
#
# Secondary optimization and customization are carried out by @molanp.
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along
# with this program; if not, write to the Free Software Foundation, Inc.,
# 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
import re
from collections.abc import Callable, Sequence

from .config import Messages
from .models import Edition, NamedEntry, ServerStatus
from .probe import UNREACHABLE

PLACEHOLDER = re.compile(r"\{([^{}:]+)(?::(\d+))?\}")
_BLANK_RUN = re.compile(r"\n(?:[ \t]*\n){2,}")


def format_image(uri: str) -> str:
    return f'<img src="{uri}"/>'


def format_list(items: Sequence[NamedEntry] | None, limit: int | None = None) -> str | None:
    """
    Join mods, plugins or players into one line.

    :param limit: Show at most this many entries, followed by "..." if some were cut
    """
    if not items:
        return None
    shown = items[:limit] if limit else items
    text = ", ".join(str(item) for item in shown)
    return f"{text}..." if limit and limit < len(items) else text


def _count(items: Sequence | None) -> str | None:
    return str(len(items)) if items is not None else None


def _number(value: int | None) -> str | None:
    return str(value) if value is not None else None


def resolve_placeholder(
    status: ServerStatus,
    name: str,
    limit: int | None = None,
    messages: Messages | None = None,
    image: Callable[[str], str] = format_image,
) -> str | None:
    """
    Value of a single template placeholder. Unknown names resolve to None.

    :param status: Status of an online server
    :param name: Placeholder name, e.g. "motd" or "playerlist"
    :param limit: Upper bound on the entries shown by the list placeholders
    """
    messages = messages or Messages()
    players = status.players
    if name == "name":
        return status.display_name
    elif name == "ip":
        return status.ip_address
    elif name == "srv":
        return str(status.srv_record) if status.srv_record else None
    elif name == "icon":
        return image(status.icon) if status.icon else None
    elif name == "motd":
        return status.motd
    elif name == "version":
        return status.version_name_clean or status.version_name
    elif name == "online":
        return _number(players.online)
    elif name == "max":
        return _number(players.max)
    elif name == "ping":
        if status.latency is None or status.latency == UNREACHABLE:
            return None
        return f"{status.latency}ms"
    elif name == "software":
        return status.software
    elif name == "edition":
        if status.edition is Edition.BEDROCK:
            return messages.edition_bedrock
        if status.edition is Edition.EDUCATION:
            return messages.edition_education
        return None
    elif name == "gamemode":
        return status.gamemode
    elif name == "eulablock":
        return messages.yes if status.eula_blocked else None
    elif name == "serverid":
        return status.server_id
    elif name == "playercount":
        return _count(players.list)
    elif name == "plugincount":
        return _count(status.plugins)
    elif name == "modcount":
        return _count(status.mods)
    elif name == "playerlist":
        if players.list is None:
            return None
        return format_list([NamedEntry(player) for player in players.list], limit)
    elif name == "pluginlist":
        return format_list(status.plugins, limit)
    elif name == "modlist":
        return format_list(status.mods, limit)
    return None


def format_server_status(
    status: ServerStatus,
    template: str,
    messages: Messages | None = None,
    image: Callable[[str], str] = format_image,
) -> str:
    """
    Fill a multi-line template with the values of `status`.

    A line whose placeholders all come out empty is dropped; lines without
    placeholders are kept as written. An offline status renders as its error.

    :param status: The status to render
    :param template: Lines containing `{name}` or `{name:limit}` placeholders
    :param messages: Localised labels, defaults to English
    :param image: Turns the icon data URI into markup the output channel can display
    """
    if not status.online:
        return status.error or ""

    def value(match: re.Match) -> str:
        limit = int(match.group(2)) if match.group(2) else None
        return resolve_placeholder(status, match.group(1), limit, messages, image) or ""

    lines = []
    for line in template.split("\n"):
        placeholders = list(PLACEHOLDER.finditer(line))
        if placeholders and not any(value(p) for p in placeholders):
            continue
        lines.append(PLACEHOLDER.sub(value, line))
    return _BLANK_RUN.sub("\n\n", "\n".join(lines)).strip()
