# remote_helper.py -- The git-remote-ipns command
# Copyright (C) 2026 The git-remote-ipns Authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# git-remote-ipns is dual-licensed under the Apache License, Version 2.0 and
# the GNU General Public License as published by the Free Software Foundation;
# version 2.0 or (at your option) any later version. You can redistribute it
# and/or modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""The git-remote-ipns command.

Git runs ``git-remote-ipns <remote> <url>`` for URLs of the form
``ipns://<name>`` and talks to it over stdin/stdout using the remote helper
protocol described in gitremote-helpers(7).
"""

__all__ = [
    "RemoteHelper",
    "main",
    "root_for_url",
]

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING, Optional, TextIO
from urllib.parse import urlparse

from dulwich.errors import ChecksumMismatch, NotGitRepository, ObjectFormatException
from dulwich.repo import Repo

from .config import RemoteSettings
from .errors import (
    MalformedIdentifier,
    NotProvided,
    RefResolutionFailure,
    SessionFinished,
    ShellError,
    UnrecognizedLinkType,
)
from .handler import IpnsHandler
from .log_utils import default_logging_config, set_verbosity
from .shell import HTTPShell
from .tracker import DiskTracker

if TYPE_CHECKING:
    from .shell import Shell

logger = logging.getLogger(__name__)

CAPABILITIES = ["fetch", "push", "option"]

# Errors that end a single push, reported back to git as "error" lines.
PUSH_ERRORS = (
    ChecksumMismatch,
    KeyError,
    MalformedIdentifier,
    NotProvided,
    ObjectFormatException,
    OSError,
    RefResolutionFailure,
    ShellError,
)

HELPER_ERRORS = PUSH_ERRORS + (SessionFinished, UnrecognizedLinkType, ValueError)


def root_for_url(url: str, shell: "Shell") -> str:
    """Determine the root a session starts from.

    Args:
      url: Remote URL, ``ipns://<name>`` or ``ipfs://<cid>``
      shell: Shell used to create an empty root for ``ipns://``
    Returns: IPFS path or CID of the root
    Raises:
      ValueError: if the URL is not supported
    """
    parsed = urlparse(url)
    name = (parsed.netloc + parsed.path).strip("/")
    if parsed.scheme == "ipns":
        if not name:
            return shell.new_directory()
        return "/ipns/" + name
    if parsed.scheme == "ipfs" and name:
        return "/ipfs/" + name
    raise ValueError(f"unsupported remote URL {url!r}")


class RemoteHelper:
    """Speaks the remote helper protocol on behalf of an IpnsHandler."""

    def __init__(self, handler: IpnsHandler, stdin: TextIO, stdout: TextIO) -> None:
        self.handler = handler
        self.stdin = stdin
        self.stdout = stdout

    def _readline(self) -> Optional[str]:
        line = self.stdin.readline()
        if not line:
            return None
        return line.rstrip("\n")

    def _read_batch(self, first: str) -> list[str]:
        batch = [first]
        while True:
            line = self._readline()
            if not line:
                return batch
            batch.append(line)

    def _write_lines(self, lines: Sequence[str]) -> None:
        for line in lines:
            self.stdout.write(line + "\n")
        self.stdout.write("\n")
        self.stdout.flush()

    def run(self) -> Optional[str]:
        """Process commands until git closes the conversation.

        Returns: the result of finishing the session
        """
        while True:
            line = self._readline()
            if not line:
                break
            logger.debug("< %s", line)
            command, _, args = line.partition(" ")
            if command == "capabilities":
                self._write_lines(CAPABILITIES)
            elif command == "list":
                self._write_lines(self.handler.list_refs(for_push=args == "for-push"))
            elif command == "option":
                self._option(args)
            elif command == "fetch":
                self._fetch(self._read_batch(line))
            elif command == "push":
                self._push(self._read_batch(line))
            else:
                raise ValueError(f"unknown remote helper command {command!r}")
        return self.handler.finish()

    def _option(self, args: str) -> None:
        name, _, value = args.partition(" ")
        if name == "verbosity":
            set_verbosity(int(value))
            response = "ok"
        else:
            response = "unsupported"
        self.stdout.write(response + "\n")
        self.stdout.flush()

    def _fetch(self, batch: list[str]) -> None:
        for line in batch:
            _, sha, name = line.split(" ", 2)
            self.handler.fetch(sha, name)
        self._write_lines([])

    def _push(self, batch: list[str]) -> None:
        responses = []
        for line in batch:
            refspec = line.split(" ", 1)[1]
            src, _, dst = refspec.lstrip("+").partition(":")
            if not src:
                responses.append(f"error {dst} deleting refs is not supported")
                continue
            try:
                self.handler.push(src, dst)
            except PUSH_ERRORS as e:
                logger.error("push %s to %s failed: %s", src, dst, e)
                responses.append(f"error {dst} {e}")
            else:
                responses.append(f"ok {dst}")
        self._write_lines(responses)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point of git-remote-ipns.

    Args:
      argv: Command line arguments (defaults to sys.argv[1:])
    Returns: exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="git-remote-ipns",
        description="Git remote helper for repositories published on IPNS",
    )
    parser.add_argument("remote", help="Name of the remote, or its URL")
    parser.add_argument("url", nargs="?", help="URL of the remote")
    args = parser.parse_args(argv)

    default_logging_config()

    try:
        gitdir = os.environ.get("GIT_DIR")
        repo = Repo(gitdir) if gitdir else Repo.discover()
    except NotGitRepository as e:
        logger.error("%s", e)
        return 1

    with repo:
        config = repo.get_config_stack()
        try:
            settings = RemoteSettings.from_config(config)
        except ValueError as e:
            logger.error("%s", e)
            return 1
        shell = HTTPShell(settings.api_url, config=config, timeout=settings.timeout)
        tracker = DiskTracker.from_repo(repo)
        try:
            root = root_for_url(args.url or args.remote, shell)
            handler = IpnsHandler(
                shell,
                tracker,
                repo,
                root,
                publish_key=settings.key if settings.publish else None,
            )
            RemoteHelper(handler, sys.stdin, sys.stdout).run()
        except HELPER_ERRORS as e:
            logger.error("fatal: %s", e)
            return 1
    return 0


def _main() -> None:
    sys.exit(main())


if __name__ == "__main__":
    _main()
