# transfer.py -- Moving git objects between a repository and the store
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

"""Moving git objects between a local repository and the store.

Every git object is stored as its own block, in git's canonical loose object
encoding (``<type> <length>\\0<body>``), so that the block's SHA-1 is the
object id.
"""

__all__ = [
    "ObjectFetcher",
    "ObjectPusher",
    "parse_raw_object",
    "raw_object",
]

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Optional

from dulwich.errors import ChecksumMismatch, ObjectFormatException
from dulwich.objects import (
    S_ISGITLINK,
    Commit,
    ShaFile,
    Tag,
    Tree,
    object_class,
)

from .cid import sha_to_cid
from .errors import IntegrityMismatch, NotProvided
from .largeobjects import LargeObjectIndex

if TYPE_CHECKING:
    from dulwich.object_store import BaseObjectStore

    from .shell import Shell

logger = logging.getLogger(__name__)


def raw_object(obj: ShaFile) -> bytes:
    """Serialize an object with its loose object header."""
    body = obj.as_raw_string()
    return obj.type_name + b" " + str(len(body)).encode("ascii") + b"\0" + body


def parse_raw_object(data: bytes) -> ShaFile:
    """Parse an object serialized by raw_object.

    Raises:
      ObjectFormatException: if the header is invalid
    """
    header, sep, body = data.partition(b"\0")
    if not sep:
        raise ObjectFormatException("missing object header")
    type_name, _, size = header.partition(b" ")
    cls = object_class(type_name)
    if cls is None:
        raise ObjectFormatException(f"unknown object type {type_name!r}")
    try:
        length = int(size)
    except ValueError as exc:
        raise ObjectFormatException(f"invalid object size {size!r}") from exc
    if length != len(body):
        raise ObjectFormatException(f"object size {length} != {len(body)}")
    return ShaFile.from_raw_string(cls.type_num, body)


def _referenced(obj: ShaFile) -> list[bytes]:
    if isinstance(obj, Commit):
        return [obj.tree, *obj.parents]
    if isinstance(obj, Tree):
        return [item.sha for item in obj.items() if not S_ISGITLINK(item.mode)]
    if isinstance(obj, Tag):
        return [obj.object[1]]
    return []


class ObjectPusher:
    """Stores the objects reachable from a commit as git blocks."""

    def __init__(self, shell: "Shell", object_store: "BaseObjectStore") -> None:
        self.shell = shell
        self.object_store = object_store

    def push_hash(
        self,
        head: bytes,
        on_object: Optional[Callable[[str, bytes], None]] = None,
        haves: Iterable[bytes] = (),
    ) -> int:
        """Store head and everything it references.

        Args:
          head: Object id to start from
          on_object: Called with (cid, raw object) for every object visited,
            before the object is stored; exceptions abort the walk
          haves: Object ids known to be stored already; the walk does not
            descend into them
        Returns: number of objects visited
        """
        todo = [head]
        seen = set(haves)
        count = 0
        while todo:
            sha = todo.pop()
            if sha in seen:
                continue
            seen.add(sha)
            obj = self.object_store[sha]
            todo.extend(_referenced(obj))
            data = raw_object(obj)
            cid = sha_to_cid(sha)
            if on_object is not None:
                on_object(cid, data)
            if not LargeObjectIndex.should_externalize(data):
                stored = self.shell.dag_put(data)
                if stored != cid:
                    raise IntegrityMismatch(cid, stored)
            count += 1
        logger.debug("pushed %d objects for %s", count, head.decode("ascii"))
        return count


class ObjectFetcher:
    """Retrieves the objects reachable from a commit into an object store."""

    def __init__(
        self,
        shell: "Shell",
        object_store: "BaseObjectStore",
        provide_block: Optional[Callable[[str], bytes]] = None,
    ) -> None:
        """Initialize an ObjectFetcher.

        Args:
          shell: Shell to read blocks from
          object_store: Object store to add fetched objects to
          provide_block: Called first for every object; may raise
            NotProvided to fall back to reading the git block
        """
        self.shell = shell
        self.object_store = object_store
        self.provide_block = provide_block

    def _get(self, cid: str) -> bytes:
        if self.provide_block is not None:
            try:
                return self.provide_block(cid)
            except NotProvided:
                pass
        return self.shell.block_get(cid)

    def fetch(self, want: bytes) -> int:
        """Fetch want and everything it references that is missing locally.

        Objects are only added once the whole graph has been retrieved.

        Returns: number of objects fetched
        """
        todo = [want]
        seen = set()
        fetched = []
        while todo:
            sha = todo.pop()
            if sha in seen or sha in self.object_store:
                continue
            seen.add(sha)
            obj = parse_raw_object(self._get(sha_to_cid(sha)))
            if obj.id != sha:
                raise ChecksumMismatch(sha, obj.id)
            fetched.append((obj, None))
            todo.extend(_referenced(obj))
        if fetched:
            self.object_store.add_objects(fetched)
        logger.debug("fetched %d objects for %s", len(fetched), want.decode("ascii"))
        return len(fetched)
