# largeobjects.py -- Externalized storage for large git objects
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

"""Externalized storage for large git objects.

Blocks in the store are limited in size, so git objects larger than
LARGE_OBJECT_THRESHOLD are not stored as git blocks. Their raw bytes are
added as an ordinary file instead, and the published tree gets a link
``objects/<object cid>`` pointing at that file.

Uploads are recorded in the tracker before the tree is patched. If the
helper dies between the two, the next push repairs the tree from the tracker
(see LargeObjectIndex.reconcile).
"""

__all__ = [
    "LARGE_OBJECT_THRESHOLD",
    "TRACKER_PREFIX",
    "LargeObjectIndex",
]

import logging
import posixpath
from collections.abc import Iterator
from typing import TYPE_CHECKING, Optional

from .errors import IntegrityMismatch, NotProvided, ObjectNotFound
from .reftree import LARGE_OBJECT_DIR

if TYPE_CHECKING:
    from .shell import Shell
    from .tracker import Tracker
    from .treepatch import TreePatcher

logger = logging.getLogger(__name__)

LARGE_OBJECT_THRESHOLD = 1 << 21

TRACKER_PREFIX = "//lobj/"


class LargeObjectIndex:
    """Maps object CIDs to the CIDs of their externally stored content.

    The mapping is read lazily from the ``objects`` directory of the
    patcher's current root.
    """

    def __init__(
        self, shell: "Shell", tracker: "Tracker", patcher: "TreePatcher"
    ) -> None:
        self.shell = shell
        self.tracker = tracker
        self.patcher = patcher
        self._objects: Optional[dict[str, str]] = None

    @staticmethod
    def should_externalize(data: bytes) -> bool:
        """Check whether an object is too large to be stored as a block."""
        return len(data) > LARGE_OBJECT_THRESHOLD

    @property
    def loaded(self) -> bool:
        return self._objects is not None

    def ensure_loaded(self) -> dict[str, str]:
        """Read the objects directory, unless that was done already.

        A missing objects directory means there are no large objects.

        Returns: the mapping from object CID to external CID
        """
        if self._objects is None:
            objects = {}
            try:
                links = self.shell.ls(posixpath.join(self.patcher.root, LARGE_OBJECT_DIR))
            except ObjectNotFound:
                links = []
            for link in links:
                objects[link.name] = link.cid
            logger.debug("loaded %d large objects", len(objects))
            self._objects = objects
        return self._objects

    def __contains__(self, cid: str) -> bool:
        return cid in self.ensure_loaded()

    def __getitem__(self, cid: str) -> str:
        return self.ensure_loaded()[cid]

    def __len__(self) -> int:
        return len(self.ensure_loaded())

    def __iter__(self) -> Iterator[str]:
        return iter(self.ensure_loaded())

    def _track(self, cid: str, external: str) -> None:
        self.tracker.set(TRACKER_PREFIX + cid, external.encode("ascii"))

    def resolve(self, cid: str) -> bytes:
        """Fetch and verify the raw bytes of a large object.

        Args:
          cid: CID of the git object
        Returns: raw git object
        Raises:
          NotProvided: if the object is not in the index
          IntegrityMismatch: if the fetched content does not hash to cid
        """
        objects = self.ensure_loaded()
        try:
            external = objects[cid]
        except KeyError as exc:
            raise NotProvided(cid) from exc

        self._track(cid, external)

        data = self.shell.cat(external)
        actual = self.shell.dag_put(data)
        if actual != cid:
            raise IntegrityMismatch(cid, actual)
        return data

    def externalize(self, cid: str, data: bytes) -> str:
        """Upload a large object and link it into the published tree.

        Args:
          cid: CID of the git object
          data: raw git object
        Returns: CID of the uploaded content
        """
        external = self.shell.add(data)
        self._track(cid, external)
        self.patcher.patch(posixpath.join(LARGE_OBJECT_DIR, cid), external)
        if self._objects is not None:
            self._objects[cid] = external
        logger.debug("externalized %s (%d bytes) as %s", cid, len(data), external)
        return external

    def reconcile(self) -> list[str]:
        """Link tracked large objects that are missing from the tree.

        Returns: CIDs of the objects that were linked, in patch order
        """
        objects = self.ensure_loaded()
        tracked = self.tracker.list_prefixed(TRACKER_PREFIX)
        repaired = []
        for key in sorted(tracked):
            cid = key[len(TRACKER_PREFIX) :]
            if cid in objects:
                continue
            external = tracked[key].decode("ascii")
            self.patcher.patch(posixpath.join(LARGE_OBJECT_DIR, cid), external)
            objects[cid] = external
            repaired.append(cid)
        if repaired:
            logger.info("linked %d missing large objects", len(repaired))
        return repaired
