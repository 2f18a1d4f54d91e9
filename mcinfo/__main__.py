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
import argparse
import asyncio
import logging
import sys

from . import Config, ServerFamily, query_info


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mcinfo", description="Look up the status of a Minecraft server."
    )
    parser.add_argument("address", nargs="?", help="server address, e.g. example.com or example.com:25566")
    parser.add_argument("-b", "--bedrock", action="store_true", help="query a Bedrock edition server")
    parser.add_argument("-t", "--template", help="file containing the output template")
    parser.add_argument("--timeout", type=float, help="seconds for each lookup and the latency probe")
    parser.add_argument("-v", "--verbose", action="store_true", help="log lookup details")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = Config()
    if args.template:
        with open(args.template, encoding="utf-8") as f:
            config.server_template = f.read()
    if args.timeout:
        config.request_timeout = config.probe_timeout = args.timeout

    family = ServerFamily.BEDROCK if args.bedrock else ServerFamily.JAVA
    print(asyncio.run(query_info(args.address, family, config)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
