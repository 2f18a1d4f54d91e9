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
"""
Reduce the JSON payload of any status lookup service to a `ServerStatus`.

Every service names and nests the same facts differently. Each logical field
has an ordered table of key paths that are tried in turn; a value is only
taken if it has the expected shape, so malformed payloads degrade to absent
fields instead of errors.
"""
import base64
import re
from collections.abc import Callable, Mapping

from .address import is_valid_port, split_address
from .models import (
    Address,
    Edition,
    NamedEntry,
    Players,
    ServerFamily,
    ServerStatus,
    SrvRecord,
)

DEFAULT_OFFLINE_MESSAGE = "Server is offline"

ICON_PREFIX = "data:image/png;base64,"

KeyPath = tuple[str, ...]

HOST_KEYS: tuple[KeyPath, ...] = (("hostname",), ("host",), ("server",))
PORT_KEYS: tuple[KeyPath, ...] = (("port",), ("ipv6Port",))
IP_KEYS: tuple[KeyPath, ...] = (("ip_address",), ("ip",))
STATE_KEYS: tuple[KeyPath, ...] = (("status",), ("state",))
ERROR_KEYS: tuple[KeyPath, ...] = (("error",), ("description", "text"), ("description",))
ONLINE_KEYS: tuple[KeyPath, ...] = (("players", "online"), ("players", "now"))
MAX_KEYS: tuple[KeyPath, ...] = (("players", "max"),)
PLAYER_LIST_KEYS: tuple[KeyPath, ...] = (
    ("players", "list"),
    ("players", "sample"),
    ("players",),
    ("player_list",),
)
VERSION_CLEAN_KEYS: tuple[KeyPath, ...] = (("version", "name_clean"), ("version",))
VERSION_NAME_KEYS: tuple[KeyPath, ...] = (("version", "name"), ("protocol", "name"))
ICON_KEYS: tuple[KeyPath, ...] = (("icon",), ("favicon",))
SRV_KEYS: tuple[KeyPath, ...] = (("srv_record",), ("srv",))
MOD_KEYS: tuple[KeyPath, ...] = (("mods",), ("modinfo", "modList"), ("mods", "names"))
PLUGIN_KEYS: tuple[KeyPath, ...] = (("plugins",), ("plugins", "names"))
SOFTWARE_KEYS: tuple[KeyPath, ...] = (("software",),)
GAMEMODE_KEYS: tuple[KeyPath, ...] = (("gamemode",),)
SERVER_ID_KEYS: tuple[KeyPath, ...] = (("server_id",),)
EDITION_KEYS: tuple[KeyPath, ...] = (("edition",),)
EULA_KEYS: tuple[KeyPath, ...] = (("eula_blocked",),)
NAME_KEYS: tuple[KeyPath, ...] = (("name",), ("name_clean",))
MOD_ID_KEYS: tuple[KeyPath, ...] = (("modid",),)

_FORMATTING_CODE = re.compile(r"§.")


def _dig(data, path: KeyPath):
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _first(data, paths: tuple[KeyPath, ...], accept: Callable[[object], bool]):
    """Return the value of the first path whose value passes `accept`."""
    for path in paths:
        value = _dig(data, path)
        if value is not None and accept(value):
            return value
    return None


def _is_text(value) -> bool:
    return isinstance(value, str) and value != ""


def _is_list(value) -> bool:
    return isinstance(value, list)


def as_int(value) -> int | None:
    """Coerce an int, an integral float or a string of digits, anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _first_int(data, paths: tuple[KeyPath, ...], accept: Callable[[int], bool] = lambda _: True) -> int | None:
    for path in paths:
        number = as_int(_dig(data, path))
        if number is not None and accept(number):
            return number
    return None


def strip_formatting(raw_motd) -> str:
    """
    Strip all formatting from a MOTD. Supports JSON chat components (as dict or
    list) and the legacy `§` formatting codes.

    :param raw_motd: The raw MOTD, either as a string, dict or list of components
    """
    if isinstance(raw_motd, str):
        return _FORMATTING_CODE.sub("", raw_motd)
    if isinstance(raw_motd, list):
        return "".join(strip_formatting(part) for part in raw_motd)
    if isinstance(raw_motd, Mapping):
        stripped_motd = strip_formatting(raw_motd.get("text", ""))
        extra = raw_motd.get("extra")
        if isinstance(extra, list):
            stripped_motd += strip_formatting(extra)
        return stripped_motd
    return ""


def _join_lines(value) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "\n".join(line for line in value if isinstance(line, str))
    return None


def is_offline(data: Mapping) -> bool:
    if data.get("online") is False:
        return True
    state = _first(data, STATE_KEYS, _is_text)
    return state is not None and state.lower() in ("error", "offline")


def resolve_error(data: Mapping, default: str = DEFAULT_OFFLINE_MESSAGE) -> str:
    return _first(data, ERROR_KEYS, _is_text) or default


def resolve_host_port(data: Mapping, fallback: Address) -> tuple[str, int]:
    """
    Work out the address a provider reports for the server.

    An explicit port field wins over a port embedded in the host string,
    which in turn wins over the port of the address the user asked for.
    """
    host = _first(data, HOST_KEYS, _is_text) or fallback.host
    explicit_port = _first_int(data, PORT_KEYS, is_valid_port)
    embedded_port = None
    split_host, port_text = split_address(host)
    if port_text is None:
        host = split_host
    elif port_text.isdigit() and is_valid_port(int(port_text)):
        host, embedded_port = split_host, int(port_text)
    if explicit_port is not None:
        return host, explicit_port
    if embedded_port is not None:
        return host, embedded_port
    return host, fallback.port


def resolve_motd(data: Mapping) -> str | None:
    """
    MOTD precedence: a plain `motd` string, then `motd.clean`, then `motd.raw`
    (either may be a list of lines), then `description`. Empty forms are skipped.
    """
    motd = data.get("motd")
    if _is_text(motd):
        return motd
    if isinstance(motd, Mapping):
        clean = _join_lines(motd.get("clean"))
        if clean:
            return clean
        raw = _join_lines(motd.get("raw"))
        if raw and (stripped := strip_formatting(raw)):
            return stripped
    description = data.get("description")
    if isinstance(description, (str, Mapping, list)):
        return strip_formatting(description) or None
    return None


def _player_name(entry) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, Mapping):
        return _first(entry, NAME_KEYS, _is_text) or ""
    return ""


def resolve_players(data: Mapping) -> Players:
    names = _first(data, PLAYER_LIST_KEYS, _is_list)
    return Players(
        online=_first_int(data, ONLINE_KEYS),
        max=_first_int(data, MAX_KEYS),
        list=tuple(_player_name(entry) for entry in names) if names is not None else None,
    )


def _named_entry(item) -> NamedEntry | None:
    if isinstance(item, str):
        return NamedEntry(item)
    if isinstance(item, Mapping) and (name := _first(item, NAME_KEYS + MOD_ID_KEYS, _is_text)):
        version = item.get("version")
        if isinstance(version, (int, float)) and not isinstance(version, bool):
            version = str(version)
        return NamedEntry(name, version if _is_text(version) else None)
    return None


def resolve_named_list(data: Mapping, paths: tuple[KeyPath, ...]) -> tuple[NamedEntry, ...] | None:
    """Mods and plugins come as plain names or `{name, version}` objects."""
    items = _first(data, paths, _is_list)
    if items is None:
        return None
    return tuple(entry for entry in map(_named_entry, items) if entry is not None)


def resolve_icon(data: Mapping) -> str | None:
    icon = _first(data, ICON_KEYS, _is_text)
    if icon is None or not icon.startswith(ICON_PREFIX):
        return None
    try:
        base64.b64decode(icon[len(ICON_PREFIX):], validate=True)
    except ValueError:
        return None
    return icon


def resolve_srv_record(data: Mapping) -> SrvRecord | None:
    srv = _first(data, SRV_KEYS, lambda value: isinstance(value, Mapping))
    if srv is None or not _is_text(srv.get("host")):
        return None
    port = as_int(srv.get("port"))
    if port is None or not is_valid_port(port):
        return None
    return SrvRecord(srv["host"], port)


def resolve_edition(data: Mapping, family: ServerFamily) -> Edition | None:
    if family is not ServerFamily.BEDROCK:
        return None
    edition = Edition.lookup(_first(data, EDITION_KEYS, _is_text))
    return edition or Edition.BEDROCK


def normalize_api_response(
    data: Mapping,
    fallback: Address,
    family: ServerFamily,
    offline_message: str = DEFAULT_OFFLINE_MESSAGE,
) -> ServerStatus:
    """
    Convert a status lookup payload into a `ServerStatus`.

    :param data: Decoded JSON object returned by a status lookup service
    :param fallback: The address the user asked for, used where the payload is silent
    :param family: Server family that was queried
    :param offline_message: Error text for offline payloads that carry none
    """
    if is_offline(data):
        return ServerStatus.offline(fallback.host, fallback.port, resolve_error(data, offline_message))

    host, port = resolve_host_port(data, fallback)
    eula_blocked = _first(data, EULA_KEYS, lambda value: isinstance(value, bool))
    return ServerStatus(
        online=True,
        host=host,
        port=port,
        ip_address=_first(data, IP_KEYS, _is_text),
        eula_blocked=eula_blocked,
        motd=resolve_motd(data),
        version_name_clean=_first(data, VERSION_CLEAN_KEYS, _is_text),
        version_name=_first(data, VERSION_NAME_KEYS, _is_text),
        players=resolve_players(data),
        icon=resolve_icon(data),
        srv_record=resolve_srv_record(data),
        mods=resolve_named_list(data, MOD_KEYS),
        software=_first(data, SOFTWARE_KEYS, _is_text),
        plugins=resolve_named_list(data, PLUGIN_KEYS),
        gamemode=_first(data, GAMEMODE_KEYS, _is_text),
        server_id=_first(data, SERVER_ID_KEYS, _is_text),
        edition=resolve_edition(data, family),
    )
