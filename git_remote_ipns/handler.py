# handler.py -- One list/push/finish session against an IPNS remote
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

"""One list/push/finish session against an IPNS remote.

A session starts from the root the remote name currently resolves to. Pushes
patch the root one link at a time and are never rolled back: if a push fails
half way, the links it already made stay in the new root, and pushing again
completes the job.
"""

__all__ = [
    "DEFAULT_HEAD_TARGET",
    "IpnsHandler",
    "ZERO_SHA",
]

import logging
import posixpath
from typing import TYPE_CHECKING, Optional

from dulwich.objects import hex_to_sha, sha_to_hex, valid_hexsha
from dulwich.refs import HEADREF, LOCAL_BRANCH_PREFIX

from .cid import cid_to_sha, sha_to_cid
from .errors import ObjectNotFound, RefResolutionFailure, SessionFinished
from .largeobjects import LargeObjectIndex
from .reftree import HEAD_REF, walk_refs
from .transfer import ObjectFetcher, ObjectPusher
from .treepatch import TreePatcher

if TYPE_CHECKING:
    from dulwich.repo import BaseRepo

    from .shell import Shell
    from .tracker import Tracker

logger = logging.getLogger(__name__)

ZERO_SHA = b"0" * 40

DEFAULT_HEAD_TARGET = "refs/heads/master"


class IpnsHandler:
    """Session state for one invocation of the remote helper.

    Attributes:
      patcher: TreePatcher owning the current root
      index: LargeObjectIndex of the current root
      did_push: whether push was called during this session
    """

    def __init__(
        self,
        shell: "Shell",
        tracker: "Tracker",
        repo: "BaseRepo",
        root: str,
        pusher: Optional[ObjectPusher] = None,
        fetcher: Optional[ObjectFetcher] = None,
        publish_key: Optional[str] = None,
    ) -> None:
        """Initialize a session.

        Args:
          shell: Shell for the store
          tracker: Durable tracker of the local repository
          repo: Local repository
          root: Path or CID of the remote's root at session start
          pusher: Object pusher (defaults to an ObjectPusher for repo)
          fetcher: Object fetcher (defaults to an ObjectFetcher for repo)
          publish_key: If set, publish the new root under this IPNS key on
            finish
        """
        self.shell = shell
        self.tracker = tracker
        self.repo = repo
        self.patcher = TreePatcher(shell, root)
        self.index = LargeObjectIndex(shell, tracker, self.patcher)
        if pusher is None:
            pusher = ObjectPusher(shell, repo.object_store)
        self.pusher = pusher
        if fetcher is None:
            fetcher = ObjectFetcher(shell, repo.object_store, self.provide_block)
        self.fetcher = fetcher
        self.publish_key = publish_key
        self.did_push = False
        self.finished = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.shell!r}, {self.root!r})"

    @property
    def root(self) -> str:
        """The current root."""
        return self.patcher.root

    def _check_active(self) -> None:
        if self.finished:
            raise SessionFinished("session already finished")

    def read_symref(self, name: str) -> Optional[str]:
        """Read the target of a symbolic ref in the current root.

        Returns: target ref name, or None if there is no such ref
        """
        try:
            data = self.shell.cat(posixpath.join(self.root, name))
        except ObjectNotFound:
            return None
        return data.decode("utf-8").strip()

    def list_refs(self, for_push: bool = False) -> list[str]:
        """List refs in the format of the remote helper ``list`` command.

        When listing for a push, the local branches are reported with a zero
        object id: the remote state is determined while pushing.
        """
        self._check_active()
        if for_push:
            return self._list_local_branches()
        ret = []
        for entry in walk_refs(self.shell, self.root):
            if entry.kind == HEAD_REF:
                sha = cid_to_sha(entry.cid)
                ret.append(f"{sha.decode('ascii')} {entry.path}")
            else:
                target = self.shell.cat(entry.cid).decode("utf-8").strip()
                ret.append(f"@{target} {entry.path}")
        return ret

    def _list_local_branches(self) -> list[str]:
        zero = ZERO_SHA.decode("ascii")
        return [
            f"{zero} {ref.decode('utf-8')}"
            for ref in sorted(self.repo.refs.allkeys())
            if ref.startswith(LOCAL_BRANCH_PREFIX)
        ]

    def _new_object(self, cid: str, data: bytes) -> None:
        if self.index.should_externalize(data):
            self.index.externalize(cid, data)

    def push(self, local_ref: str, remote_ref: str) -> str:
        """Push a local ref to the remote.

        Args:
          local_ref: Name of the local ref to push
          remote_ref: Name of the ref to update in the remote
        Returns: local_ref
        Raises:
          RefResolutionFailure: if local_ref can not be resolved
        """
        self._check_active()
        self.did_push = True

        ref = local_ref.encode("utf-8")
        try:
            head = self.repo.refs[ref]
        except KeyError as exc:
            raise RefResolutionFailure(ref) from exc
        if not valid_hexsha(head):
            raise RefResolutionFailure(ref, "not an object id")

        tracked = self.tracker.get(remote_ref)
        haves = [sha_to_hex(tracked)] if tracked and len(tracked) == 20 else []
        self.pusher.push_hash(head, self._new_object, haves)

        self.tracker.set(remote_ref, hex_to_sha(head))
        self.patcher.patch(remote_ref, sha_to_cid(head))

        head_name = HEADREF.decode("ascii")
        if self.read_symref(head_name) is None:
            self.patcher.add_text(head_name, DEFAULT_HEAD_TARGET)
        logger.debug("pushed %s to %s", local_ref, remote_ref)
        return local_ref

    def fetch(self, sha: str, name: Optional[str] = None) -> int:
        """Fetch an object and its history into the local repository.

        Returns: number of objects fetched
        """
        self._check_active()
        logger.debug("fetching %s (%s)", sha, name)
        return self.fetcher.fetch(sha.encode("ascii"))

    def provide_block(self, cid: str) -> bytes:
        """Provide a block that is stored as an external large object."""
        return self.index.resolve(cid)

    def finish(self) -> Optional[str]:
        """End the session.

        After a push, large objects recorded in the tracker but missing from
        the tree are linked, and the new root is published if configured.

        Returns: the name the pushed tree can be found under, or None if
          nothing was pushed
        """
        self._check_active()
        self.finished = True
        if not self.did_push:
            return None
        self.index.reconcile()
        name = self.root
        if self.publish_key is not None:
            name = self.shell.name_publish(self.root, self.publish_key)
        logger.info("Pushed to IPFS as ipns://%s", name)
        return name
