# tracker.py -- Durable bookkeeping for pushes
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

"""Key-value ledger that outlives a single remote helper process.

The tracker remembers the last commit pushed for each remote ref, and the
large objects that were uploaded but may not have made it into the published
tree yet.
"""

__all__ = [
    "DiskTracker",
    "MemoryTracker",
    "Tracker",
]

import os
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote, unquote

from dulwich.file import GitFile, ensure_dir_exists

if TYPE_CHECKING:
    from dulwich.repo import Repo


class Tracker:
    """A durable mapping from string keys to bytes."""

    def get(self, key: str) -> Optional[bytes]:
        """Return the value stored under key, or None."""
        raise NotImplementedError(self.get)

    def set(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any previous value."""
        raise NotImplementedError(self.set)

    def list_prefixed(self, prefix: str) -> dict[str, bytes]:
        """Return all entries whose key starts with prefix.

        Keys are returned in full, prefix included.
        """
        raise NotImplementedError(self.list_prefixed)


class MemoryTracker(Tracker):
    """Tracker backed by a simple dict.

    Nothing survives the process; intended for tests.
    """

    def __init__(self, entries: Optional[dict[str, bytes]] = None) -> None:
        self._entries = {} if entries is None else entries

    def get(self, key: str) -> Optional[bytes]:
        return self._entries.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._entries[key] = bytes(value)

    def list_prefixed(self, prefix: str) -> dict[str, bytes]:
        return {k: v for (k, v) in self._entries.items() if k.startswith(prefix)}


class DiskTracker(Tracker):
    """Tracker storing one file per key below a directory.

    Keys are percent-encoded into file names, and files are replaced
    atomically using git's lock file protocol.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"

    @classmethod
    def create(cls, path: str) -> "DiskTracker":
        """Create a tracker directory (if necessary) and open it."""
        ensure_dir_exists(path)
        return cls(path)

    @classmethod
    def from_repo(cls, repo: "Repo", create: bool = True) -> "DiskTracker":
        """Open the tracker kept in a repository's control directory."""
        path = os.path.join(repo.controldir(), "ipns", "tracker")
        if create:
            return cls.create(path)
        return cls(path)

    def _key_path(self, key: str) -> str:
        if not key:
            raise ValueError("empty tracker key")
        return os.path.join(self.path, quote(key, safe=""))

    def get(self, key: str) -> Optional[bytes]:
        try:
            with open(self._key_path(key), "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        with GitFile(self._key_path(key), "wb") as f:
            f.write(value)

    def list_prefixed(self, prefix: str) -> dict[str, bytes]:
        try:
            names = os.listdir(self.path)
        except FileNotFoundError:
            return {}
        ret = {}
        for name in names:
            if name.endswith(".lock"):
                continue
            key = unquote(name)
            if not key.startswith(prefix):
                continue
            value = self.get(key)
            if value is not None:
                ret[key] = value
        return ret
