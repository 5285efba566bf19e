# reftree.py -- Discovery of refs stored in an IPFS directory tree
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

"""Discovery of refs stored in an IPFS directory tree.

The published root mirrors git's ref namespace: ``refs/heads/main`` is a
link from ``refs/heads`` named ``main`` that points directly at the commit's
git block, and ``HEAD`` is a small file holding the name of the ref it
points at. The top-level ``objects`` directory holds externalized large
objects and is not part of the ref namespace.
"""

__all__ = [
    "DIRECTORY",
    "HEAD_REF",
    "LARGE_OBJECT_DIR",
    "SYMBOLIC_REF",
    "RefEntry",
    "classify_link",
    "walk_refs",
]

import posixpath
from typing import TYPE_CHECKING, NamedTuple, Optional

from . import shell as _mod_shell
from .errors import UnrecognizedLinkType

if TYPE_CHECKING:
    from .shell import Link, Shell

LARGE_OBJECT_DIR = "objects"

HEAD_REF = "head"
SYMBOLIC_REF = "symbolic"
DIRECTORY = "directory"


class RefEntry(NamedTuple):
    """A ref found in the tree."""

    path: str
    kind: str
    cid: str


def classify_link(link: "Link", depth: int) -> Optional[str]:
    """Decide how a tree link takes part in the ref namespace.

    Args:
      link: Link to classify
      depth: Depth of the directory holding the link, 0 for the root
    Returns: DIRECTORY, HEAD_REF or SYMBOLIC_REF, or None if the link
      is skipped
    Raises:
      UnrecognizedLinkType: if the link type is not supported
    """
    if depth == 0 and link.name == LARGE_OBJECT_DIR:
        return None
    if link.type == _mod_shell.DIRECTORY:
        return DIRECTORY
    if link.type == _mod_shell.FILE:
        return SYMBOLIC_REF
    if link.type == _mod_shell.UNKNOWN:
        # Git blocks are opaque to the store's file system layer.
        return HEAD_REF
    raise UnrecognizedLinkType(link.name, link.type)


def walk_refs(
    shell: "Shell", root: str, depth: int = 0, prefix: str = ""
) -> list[RefEntry]:
    """Recursively list the refs below a directory node.

    Args:
      shell: Shell to list nodes with
      root: Path or CID of the directory to walk
      depth: Depth of root within the published tree
      prefix: Ref path of root within the published tree
    Returns: list of RefEntry, depth first in listing order
    """
    ret = []
    for link in shell.ls(root):
        path = posixpath.join(prefix, link.name) if prefix else link.name
        try:
            kind = classify_link(link, depth)
        except UnrecognizedLinkType as exc:
            raise UnrecognizedLinkType(path, link.type) from exc
        if kind is None:
            continue
        if kind == DIRECTORY:
            ret.extend(
                walk_refs(shell, posixpath.join(root, link.name), depth + 1, path)
            )
        else:
            ret.append(RefEntry(path, kind, link.cid))
    return ret
