# config.py -- Settings for the IPNS remote helper
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

"""Settings for the IPNS remote helper, read from git config.

Recognized keys::

    [ipfs]
        api = http://127.0.0.1:5001
        timeout = 30
    [ipns]
        publish = true
        key = self

The ``IPFS_API`` environment variable takes precedence over ``ipfs.api``.
"""

__all__ = ["RemoteSettings"]

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .shell import DEFAULT_API_URL

if TYPE_CHECKING:
    from dulwich.config import Config


@dataclass
class RemoteSettings:
    """Settings of the remote helper."""

    api_url: str = DEFAULT_API_URL
    timeout: Optional[float] = None
    publish: bool = False
    key: str = "self"

    @classmethod
    def from_config(
        cls, config: "Config", environ: Optional[Mapping[str, str]] = None
    ) -> "RemoteSettings":
        """Read settings from a git config.

        Args:
          config: Config to read from, usually a repository's config stack
          environ: Environment to consult (defaults to os.environ)
        Raises:
          ValueError: if ipfs.timeout is not a number
        """
        if environ is None:
            environ = os.environ
        settings = cls()

        api_url = environ.get("IPFS_API")
        if not api_url:
            try:
                api_url = config.get((b"ipfs",), b"api").decode("utf-8")
            except KeyError:
                api_url = None
        if api_url:
            settings.api_url = api_url

        try:
            timeout = config.get((b"ipfs",), b"timeout")
        except KeyError:
            pass
        else:
            try:
                settings.timeout = float(timeout)
            except ValueError as exc:
                raise ValueError(f"Invalid ipfs.timeout in config: {timeout!r}") from exc

        settings.publish = bool(config.get_boolean((b"ipns",), b"publish", False))

        try:
            settings.key = config.get((b"ipns",), b"key").decode("utf-8")
        except KeyError:
            pass
        return settings
