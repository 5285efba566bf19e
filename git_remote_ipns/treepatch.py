# treepatch.py -- Sequential mutation of the published root
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

"""Sequential mutation of the published root.

The store never modifies a directory node in place: attaching a link yields a
brand new root node. Every patch must therefore start from the root produced
by the previous one, or the earlier change is lost. A TreePatcher holds the
latest root and feeds it to each patch in turn. There is a single writer per
session, so no locking is done.
"""

__all__ = ["TreePatcher"]

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .shell import Shell

logger = logging.getLogger(__name__)


class TreePatcher:
    """Applies link patches to a root, one after the other."""

    def __init__(self, shell: "Shell", root: str) -> None:
        """Initialize a TreePatcher.

        Args:
          shell: Shell used to create the patched nodes
          root: Path or CID of the root to start from
        """
        self.shell = shell
        self.root = root
        self.patch_count = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.root!r})"

    def patch(self, path: str, target: str, create: bool = True) -> str:
        """Link target at path below the current root.

        The result becomes the new current root. A failure leaves the current
        root untouched.

        Args:
          path: ``/``-separated link path relative to the root
          target: CID to link to
          create: Create missing intermediate directories
        Returns: CID of the new root
        """
        new_root = self.shell.patch_link(self.root, path, target, create)
        logger.debug("patched %s -> %s: %s => %s", path, target, self.root, new_root)
        self.root = new_root
        self.patch_count += 1
        return new_root

    def add_text(self, path: str, text: str) -> str:
        """Store text as a file and link it at path.

        Returns: CID of the new root
        """
        return self.patch(path, self.shell.add(text.encode("utf-8")))
