# test_config.py -- Tests for remote helper settings
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

"""Tests for git_remote_ipns.config."""

from dulwich.config import ConfigDict

from git_remote_ipns.config import RemoteSettings
from git_remote_ipns.shell import DEFAULT_API_URL

from . import TestCase


class RemoteSettingsTests(TestCase):
    def test_defaults(self) -> None:
        settings = RemoteSettings.from_config(ConfigDict(), environ={})
        self.assertEqual(RemoteSettings(DEFAULT_API_URL, None, False, "self"), settings)

    def test_from_config(self) -> None:
        config = ConfigDict()
        config.set((b"ipfs",), b"api", b"http://ipfs.example.com:5001")
        config.set((b"ipfs",), b"timeout", b"2.5")
        config.set((b"ipns",), b"publish", b"true")
        config.set((b"ipns",), b"key", b"repo")
        self.assertEqual(
            RemoteSettings("http://ipfs.example.com:5001", 2.5, True, "repo"),
            RemoteSettings.from_config(config, environ={}),
        )

    def test_environment_wins(self) -> None:
        config = ConfigDict()
        config.set((b"ipfs",), b"api", b"http://ipfs.example.com:5001")
        settings = RemoteSettings.from_config(
            config, environ={"IPFS_API": "http://localhost:5002"}
        )
        self.assertEqual("http://localhost:5002", settings.api_url)

    def test_os_environ(self) -> None:
        self.overrideEnv("IPFS_API", "http://localhost:5003")
        settings = RemoteSettings.from_config(ConfigDict())
        self.assertEqual("http://localhost:5003", settings.api_url)

    def test_invalid_timeout(self) -> None:
        config = ConfigDict()
        config.set((b"ipfs",), b"timeout", b"soon")
        self.assertRaises(ValueError, RemoteSettings.from_config, config, {})

    def test_publish_false(self) -> None:
        config = ConfigDict()
        config.set((b"ipns",), b"publish", b"false")
        self.assertFalse(RemoteSettings.from_config(config, environ={}).publish)
