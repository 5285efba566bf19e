# test_handler.py -- Tests for remote sessions
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

"""Tests for git_remote_ipns.handler."""

from unittest import mock
from urllib.parse import urlparse

from dulwich.objects import Blob, hex_to_sha
from dulwich.repo import MemoryRepo

from git_remote_ipns.cid import sha_to_cid
from git_remote_ipns.errors import (
    FetchFailure,
    NotProvided,
    PatchFailure,
    RefResolutionFailure,
    SessionFinished,
)
from git_remote_ipns.handler import ZERO_SHA, IpnsHandler
from git_remote_ipns.largeobjects import TRACKER_PREFIX
from git_remote_ipns.shell import HTTPShell, MemoryShell
from git_remote_ipns.tracker import MemoryTracker
from git_remote_ipns.transfer import raw_object

from . import TestCase
from .utils import (
    PoolManagerMock,
    json_response,
    make_commit,
    make_repo,
    raw_cid,
)

LARGE_CONTENTS = b"y" * (3 << 20)


class IpnsHandlerTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.shell = MemoryShell()
        self.tracker = MemoryTracker()
        self.repo = make_repo({b"main": {b"README": b"0123456789"}})
        self.main = self.repo.refs[b"refs/heads/main"]

    def session(self, root=None, **kwargs) -> IpnsHandler:
        if root is None:
            root = self.shell.new_directory()
        return IpnsHandler(self.shell, self.tracker, self.repo, root, **kwargs)

    def test_push_to_empty_root(self) -> None:
        handler = self.session()
        handler.push("refs/heads/main", "refs/heads/main")
        root = handler.finish()

        self.assertEqual(
            ["HEAD", "refs"], [link.name for link in self.shell.ls(root)]
        )
        self.assertEqual(b"refs/heads/master", self.shell.cat(root + "/HEAD"))
        self.assertEqual(
            [
                "@refs/heads/master HEAD",
                self.main.decode("ascii") + " refs/heads/main",
            ],
            self.session(root).list_refs(),
        )

    def test_push_keeps_existing_head(self) -> None:
        root = self.shell.patch_link(
            self.shell.new_directory(), "HEAD", self.shell.add(b"refs/heads/main\n")
        )
        handler = self.session(root)
        handler.push("refs/heads/main", "refs/heads/main")
        self.assertEqual("refs/heads/main", handler.read_symref("HEAD"))
        self.assertEqual(1, handler.patcher.patch_count)

    def test_push_from_published_name(self) -> None:
        first = self.session()
        first.push("refs/heads/main", "refs/heads/main")
        self.shell.name_publish(first.finish(), "self")

        handler = self.session("/ipns/self")
        handler.push("refs/heads/main", "refs/heads/other")
        root = handler.finish()
        self.assertEqual(
            [
                "@refs/heads/master HEAD",
                self.main.decode("ascii") + " refs/heads/main",
                self.main.decode("ascii") + " refs/heads/other",
            ],
            self.session(root).list_refs(),
        )

    def test_list_empty(self) -> None:
        self.assertEqual([], self.session().list_refs())

    def test_list_for_push(self) -> None:
        commit = make_commit(self.repo, {b"a": b"b"})
        self.repo.refs[b"refs/heads/alpha"] = commit.id
        self.repo.refs[b"refs/tags/v1"] = commit.id
        zero = ZERO_SHA.decode("ascii")
        self.assertEqual(
            [zero + " refs/heads/alpha", zero + " refs/heads/main"],
            self.session().list_refs(for_push=True),
        )

    def test_list_for_push_nested_branches(self) -> None:
        commit = make_commit(self.repo, {b"a": b"b"})
        self.repo.refs[b"refs/heads/feature/x"] = commit.id
        self.repo.refs[b"refs/remotes/origin/main"] = commit.id
        zero = ZERO_SHA.decode("ascii")
        self.assertEqual(
            [zero + " refs/heads/feature/x", zero + " refs/heads/main"],
            self.session().list_refs(for_push=True),
        )

    def test_push_unknown_ref(self) -> None:
        handler = self.session()
        with self.assertRaises(RefResolutionFailure) as cm:
            handler.push("refs/heads/missing", "refs/heads/missing")
        self.assertEqual(b"refs/heads/missing", cm.exception.ref)
        self.assertTrue(handler.did_push)

    def test_push_records_tracker(self) -> None:
        self.session().push("refs/heads/main", "refs/heads/main")
        self.assertEqual(hex_to_sha(self.main), self.tracker.get("refs/heads/main"))

    def test_push_passes_tracked_have(self) -> None:
        self.tracker.set("refs/heads/main", hex_to_sha(self.main))
        pusher = mock.Mock()
        handler = self.session(pusher=pusher)
        handler.push("refs/heads/main", "refs/heads/main")
        pusher.push_hash.assert_called_once_with(
            self.main, handler._new_object, [self.main]
        )

    def test_push_large_object(self) -> None:
        commit = make_commit(self.repo, {b"large": LARGE_CONTENTS})
        self.repo.refs[b"refs/heads/main"] = commit.id
        large = raw_object(Blob.from_string(LARGE_CONTENTS))
        cid = raw_cid(large)

        handler = self.session()
        handler.push("refs/heads/main", "refs/heads/main")
        external = self.tracker.get(TRACKER_PREFIX + cid)
        self.assertIsNotNone(external)
        root = handler.finish()
        self.assertEqual(large, self.shell.cat(root + "/objects/" + cid))
        # objects/ is not part of the ref namespace
        self.assertEqual(
            ["@refs/heads/master HEAD", commit.id.decode("ascii") + " refs/heads/main"],
            self.session(root).list_refs(),
        )

    def test_finish_links_tracked_objects(self) -> None:
        commit = make_commit(self.repo, {b"large": LARGE_CONTENTS})
        self.repo.refs[b"refs/heads/main"] = commit.id
        cid = raw_cid(raw_object(Blob.from_string(LARGE_CONTENTS)))

        handler = self.session()
        patch_link = self.shell.patch_link

        def failing_patch_link(root, path, target, create=True):
            if path.startswith("objects/"):
                raise PatchFailure(path, "simulated failure")
            return patch_link(root, path, target, create)

        with mock.patch.object(self.shell, "patch_link", failing_patch_link):
            self.assertRaises(
                PatchFailure, handler.push, "refs/heads/main", "refs/heads/main"
            )
        self.assertIsNotNone(self.tracker.get(TRACKER_PREFIX + cid))

        root = handler.finish()
        self.assertEqual(
            self.tracker.get(TRACKER_PREFIX + cid).decode("ascii"),
            self.shell.ls(root + "/objects")[0].cid,
        )

    def test_finish_without_push(self) -> None:
        handler = self.session()
        self.assertIsNone(handler.finish())
        self.assertEqual({}, self.shell.names)

    def test_finished_session(self) -> None:
        handler = self.session()
        handler.finish()
        self.assertRaises(SessionFinished, handler.finish)
        self.assertRaises(SessionFinished, handler.list_refs)
        self.assertRaises(
            SessionFinished, handler.push, "refs/heads/main", "refs/heads/main"
        )

    def test_finish_publishes(self) -> None:
        handler = self.session(publish_key="repo")
        handler.push("refs/heads/main", "refs/heads/main")
        self.assertEqual("repo", handler.finish())
        self.assertEqual(handler.root, self.shell.names["repo"])

    def test_finish_logs_location(self) -> None:
        handler = self.session()
        handler.push("refs/heads/main", "refs/heads/main")
        with self.assertLogs("git_remote_ipns.handler", level="INFO") as cm:
            root = handler.finish()
        self.assertEqual(
            [f"INFO:git_remote_ipns.handler:Pushed to IPFS as ipns://{root}"],
            cm.output,
        )

    def test_fetch(self) -> None:
        commit = make_commit(self.repo, {b"large": LARGE_CONTENTS, b"small": b"s"})
        self.repo.refs[b"refs/heads/main"] = commit.id
        handler = self.session()
        handler.push("refs/heads/main", "refs/heads/main")
        root = handler.finish()

        clone = MemoryRepo()
        session = IpnsHandler(self.shell, MemoryTracker(), clone, root)
        [_, line] = session.list_refs()
        sha, name = line.split(" ")
        self.assertEqual(4, session.fetch(sha, name))
        tree = clone[clone[commit.id].tree]
        self.assertEqual(LARGE_CONTENTS, clone[tree[b"large"][1]].data)

    def test_provide_block_not_provided(self) -> None:
        handler = self.session()
        self.assertRaises(NotProvided, handler.provide_block, sha_to_cid(self.main))


class HTTPSessionTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.pool = PoolManagerMock()
        self.shell = HTTPShell(pool_manager=self.pool)
        self.repo = make_repo({b"main": {b"README": b"0123456789"}})

    def commands(self) -> list[str]:
        return [urlparse(url).path for (_, url, _) in self.pool.requests]

    def test_unreachable_head_fails_push(self) -> None:
        handler = IpnsHandler(
            self.shell, MemoryTracker(), self.repo, "/ipns/k51name", pusher=mock.Mock()
        )
        self.pool.responses.extend(
            [
                json_response({"Hash": "bafynewroot"}),
                json_response(
                    {"Message": "block was not found locally (offline)"}, 500
                ),
            ]
        )
        self.assertRaises(
            FetchFailure, handler.push, "refs/heads/main", "refs/heads/main"
        )
        self.assertEqual(
            ["/api/v0/object/patch/add-link", "/api/v0/cat"], self.commands()
        )
        self.assertEqual("bafynewroot", handler.root)

    def test_missing_head_is_created(self) -> None:
        handler = IpnsHandler(
            self.shell, MemoryTracker(), self.repo, "/ipns/k51name", pusher=mock.Mock()
        )
        self.pool.responses.extend(
            [
                json_response({"Hash": "bafynewroot"}),
                json_response(
                    {"Message": 'no link named "HEAD" under bafynewroot'}, 500
                ),
                json_response({"Hash": "bafkhead"}),
                json_response({"Hash": "bafyheadroot"}),
            ]
        )
        handler.push("refs/heads/main", "refs/heads/main")
        self.assertEqual(
            [
                "/api/v0/object/patch/add-link",
                "/api/v0/cat",
                "/api/v0/add",
                "/api/v0/object/patch/add-link",
            ],
            self.commands(),
        )
        self.assertEqual("bafyheadroot", handler.root)
