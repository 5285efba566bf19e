# utils.py -- Test utilities for git-remote-ipns
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

"""Utility functions common to git-remote-ipns tests."""

import hashlib
import json
from typing import Optional

from dulwich.objects import Blob, Commit, Tree
from dulwich.repo import MemoryRepo

from git_remote_ipns.cid import sha_to_cid


def raw_cid(data: bytes) -> str:
    """Return the CID a raw git object is stored under."""
    return sha_to_cid(hashlib.sha1(data).hexdigest().encode("ascii"))


def make_commit(
    repo: MemoryRepo,
    files: dict[bytes, bytes],
    parents: Optional[list[bytes]] = None,
    message: bytes = b"Test commit",
) -> Commit:
    """Add a commit with the given files to a repository.

    Args:
      repo: Repository to add objects to
      files: Mapping from file name to contents
      parents: Parent commit ids
      message: Commit message
    Returns: the new Commit
    """
    objects = []
    tree = Tree()
    for name, contents in sorted(files.items()):
        blob = Blob.from_string(contents)
        tree.add(name, 0o100644, blob.id)
        objects.append(blob)
    commit = Commit()
    commit.tree = tree.id
    commit.parents = parents or []
    commit.author = commit.committer = b"Test Author <test@example.com>"
    commit.author_time = commit.commit_time = 1700000000
    commit.author_timezone = commit.commit_timezone = 0
    commit.message = message
    objects.extend([tree, commit])
    repo.object_store.add_objects([(obj, None) for obj in objects])
    return commit


def make_repo(branches: dict[bytes, dict[bytes, bytes]]) -> MemoryRepo:
    """Create a MemoryRepo with one single-commit branch per entry."""
    repo = MemoryRepo()
    for branch, files in branches.items():
        commit = make_commit(repo, files)
        repo.refs[b"refs/heads/" + branch] = commit.id
    return repo


class FakeResponse:
    def __init__(self, status: int, data: bytes) -> None:
        self.status = status
        self.data = data


class PoolManagerMock:
    """Records urllib3 requests and replays queued responses."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, dict]] = []
        self.responses: list[FakeResponse] = []

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.requests.append((method, url, kwargs))
        return self.responses.pop(0)


def json_response(doc: object, status: int = 200) -> FakeResponse:
    """Build a response carrying a JSON document."""
    return FakeResponse(status, json.dumps(doc).encode("utf-8"))
