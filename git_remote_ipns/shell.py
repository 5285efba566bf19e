# shell.py -- Access to the IPFS content-addressed store
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

"""Access to the IPFS store.

A shell lists, reads and writes nodes of the store. Two implementations are
provided:

- HTTPShell talks to a Kubo daemon through its RPC API
- MemoryShell keeps everything in memory, for tests and experiments

Paths are IPFS paths (``/ipfs/<cid>/a/b``, ``/ipns/<name>/a``) or a bare CID
optionally followed by ``/``-separated link names.
"""

__all__ = [
    "DIRECTORY",
    "FILE",
    "UNKNOWN",
    "HTTPShell",
    "Link",
    "MemoryShell",
    "Shell",
]

import hashlib
import json
import logging
import posixpath
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, NamedTuple, Optional
from urllib.parse import urlencode

from urllib3.exceptions import HTTPError

from .cid import DAG_PB, GIT_RAW, RAW, SHA1, SHA2_256, encode_cid
from .errors import (
    FetchFailure,
    ListingFailure,
    ObjectNotFound,
    PatchFailure,
    ShellError,
)

if TYPE_CHECKING:
    import urllib3
    from dulwich.config import Config

logger = logging.getLogger(__name__)

FILE = "file"
DIRECTORY = "directory"
UNKNOWN = "unknown"

DEFAULT_API_URL = "http://127.0.0.1:5001"


class Link(NamedTuple):
    """A named link from a directory node."""

    name: str
    type: str
    cid: str
    size: int = 0


class Shell:
    """Base class for store access."""

    def ls(self, path: str) -> list[Link]:
        """List the links of a directory node.

        Raises:
          ObjectNotFound: if path does not exist
          ListingFailure: if the node can not be listed
        """
        raise NotImplementedError(self.ls)

    def cat(self, path: str) -> bytes:
        """Read the contents of a file node.

        Raises:
          ObjectNotFound: if path does not exist
          FetchFailure: if the content can not be read
        """
        raise NotImplementedError(self.cat)

    def add(self, data: bytes) -> str:
        """Store data as a file and return its CID."""
        raise NotImplementedError(self.add)

    def patch_link(self, root: str, path: str, target: str, create: bool = True) -> str:
        """Attach target under path below root.

        Args:
          root: Path or CID of the directory node to patch
          path: ``/``-separated link path relative to root
          target: CID to link to
          create: Create missing intermediate directories
        Returns: CID of the new root node
        Raises:
          PatchFailure: if the patch can not be applied
        """
        raise NotImplementedError(self.patch_link)

    def dag_put(self, data: bytes) -> str:
        """Store data as a raw git block and return the block's CID."""
        raise NotImplementedError(self.dag_put)

    def block_get(self, cid: str) -> bytes:
        """Retrieve the raw contents of a block.

        Raises:
          ObjectNotFound: if the block is not available
        """
        raise NotImplementedError(self.block_get)

    def new_directory(self) -> str:
        """Return the CID of an empty directory node."""
        raise NotImplementedError(self.new_directory)

    def name_publish(self, cid: str, key: str = "self") -> str:
        """Point the IPNS name of key at cid and return the name."""
        raise NotImplementedError(self.name_publish)


def _ipfs_path(path: str) -> str:
    if path.startswith("/"):
        return path
    return "/ipfs/" + path


# Kubo reports a missing link only through its error message. Blocks that
# can not be retrieved are failures of the operation, not missing links.
_NOT_FOUND_MARKERS = ("no link named",)

# Kubo's unixfs data types, as reported by "ls"
_LINK_TYPES = {
    -1: UNKNOWN,
    0: FILE,
    1: DIRECTORY,
    2: FILE,
    4: "symlink",
    5: DIRECTORY,
}


class HTTPShell(Shell):
    """Shell for a Kubo daemon, using the HTTP RPC API."""

    def __init__(
        self,
        url: str = DEFAULT_API_URL,
        config: Optional["Config"] = None,
        timeout: Optional[float] = None,
        pool_manager: Optional["urllib3.PoolManager"] = None,
    ) -> None:
        """Initialize HTTP shell.

        Args:
          url: RPC endpoint of the daemon, without the ``/api/v0`` suffix
          config: Optional git config for proxy and TLS settings
          timeout: Optional timeout for each request, in seconds
          pool_manager: Optional urllib3 pool manager to use
        """
        self._base_url = url.rstrip("/") + "/api/v0/"
        self.config = config
        self.timeout = timeout
        self._pool_manager = pool_manager

    @property
    def url(self) -> str:
        """Get the RPC endpoint URL."""
        return self._base_url[: -len("/api/v0/")]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.url!r})"

    def _get_pool_manager(self) -> "urllib3.PoolManager":
        """Get urllib3 pool manager with git config applied."""
        if self._pool_manager is None:
            from dulwich.client import default_urllib3_manager

            self._pool_manager = default_urllib3_manager(
                self.config, base_url=self.url, timeout=self.timeout
            )
        return self._pool_manager

    def _request(
        self,
        command: str,
        args: tuple[str, ...] = (),
        params: Optional[Mapping[str, str]] = None,
        data: Optional[bytes] = None,
        error_class: type[ShellError] = ShellError,
    ) -> bytes:
        query = [("arg", arg) for arg in args]
        if params:
            query.extend(params.items())
        url = self._base_url + command
        if query:
            url += "?" + urlencode(query)
        logger.debug("ipfs %s %r", command, args)

        path = args[0] if args else command
        pool_manager = self._get_pool_manager()
        try:
            if data is None:
                response = pool_manager.request("POST", url)
            else:
                response = pool_manager.request(
                    "POST",
                    url,
                    fields={"file": ("data", data, "application/octet-stream")},
                )
        except HTTPError as exc:
            raise error_class(path, f"{self.url}: {exc}") from exc
        if response.status >= 400:
            self._raise_for_error(response.data, path, error_class)
        return response.data

    def _raise_for_error(
        self, body: bytes, path: str, error_class: type[ShellError]
    ) -> None:
        try:
            message = json.loads(body)["Message"]
        except (ValueError, KeyError, TypeError):
            message = body.decode("utf-8", errors="replace")
        if any(marker in message for marker in _NOT_FOUND_MARKERS):
            raise ObjectNotFound(path, message)
        raise error_class(path, message)

    def _json(self, *args: Any, **kwargs: Any) -> Any:
        body = self._request(*args, **kwargs)
        # Streaming commands emit one JSON document per line, the last one
        # carries the result.
        lines = [line for line in body.splitlines() if line.strip()]
        if not lines:
            raise ShellError(args[0], "empty response")
        return json.loads(lines[-1])

    def ls(self, path: str) -> list[Link]:
        """List the links of a directory node."""
        result = self._json("ls", (_ipfs_path(path),), error_class=ListingFailure)
        links = []
        for obj in result.get("Objects", []):
            for link in obj.get("Links") or []:
                links.append(
                    Link(
                        name=link["Name"],
                        type=_LINK_TYPES.get(link.get("Type", -1), str(link["Type"])),
                        cid=link["Hash"],
                        size=link.get("Size", 0),
                    )
                )
        return links

    def cat(self, path: str) -> bytes:
        """Read the contents of a file node."""
        return self._request("cat", (_ipfs_path(path),), error_class=FetchFailure)

    def add(self, data: bytes) -> str:
        """Store data as a file and return its CID."""
        result = self._json(
            "add",
            params={"cid-version": "1", "raw-leaves": "true", "pin": "true"},
            data=data,
        )
        return result["Hash"]

    def patch_link(self, root: str, path: str, target: str, create: bool = True) -> str:
        """Attach target under path below root."""
        result = self._json(
            "object/patch/add-link",
            (_ipfs_path(root), path, target),
            params={"create": "true" if create else "false"},
            error_class=PatchFailure,
        )
        return result["Hash"]

    def dag_put(self, data: bytes) -> str:
        """Store data as a raw git block and return the block's CID."""
        result = self._json(
            "dag/put",
            params={
                "input-codec": "raw",
                "store-codec": "git-raw",
                "hash": "sha1",
                "allow-big-block": "true",
                "pin": "true",
            },
            data=data,
        )
        return result["Cid"]["/"]

    def block_get(self, cid: str) -> bytes:
        """Retrieve the raw contents of a block."""
        return self._request("block/get", (cid,), error_class=FetchFailure)

    def new_directory(self) -> str:
        """Return the CID of an empty directory node."""
        return self._json("object/new", ("unixfs-dir",))["Hash"]

    def name_publish(self, cid: str, key: str = "self") -> str:
        """Point the IPNS name of key at cid and return the name."""
        result = self._json("name/publish", (_ipfs_path(cid),), params={"key": key})
        return result["Name"]


class MemoryShell(Shell):
    """Shell keeping all nodes in memory.

    Nodes are stored in ``nodes``, a dictionary mapping CIDs to a tuple of
    (kind, content). Directories map link names to CIDs; files and git
    blocks hold bytes.
    """

    def __init__(self) -> None:
        """Initialize an empty MemoryShell."""
        self.nodes: dict[str, tuple[str, Any]] = {}
        self.names: dict[str, str] = {}

    def _store_directory(self, entries: Mapping[str, str]) -> str:
        digest = hashlib.sha256()
        for name in sorted(entries):
            digest.update(name.encode("utf-8") + b"\0" + entries[name].encode() + b"\n")
        cid = encode_cid(DAG_PB, SHA2_256, digest.digest())
        self.nodes[cid] = (DIRECTORY, dict(entries))
        return cid

    def _lookup(self, path: str) -> str:
        segments = [s for s in path.split("/") if s]
        if not segments:
            raise ObjectNotFound(path, "empty path")
        if path.startswith("/"):
            namespace = segments.pop(0)
            if not segments:
                raise ObjectNotFound(path, "empty path")
            if namespace == "ipns":
                name = segments.pop(0)
                try:
                    cid = self.names[name]
                except KeyError as exc:
                    raise ObjectNotFound(path, f"could not resolve name {name}") from exc
            elif namespace == "ipfs":
                cid = segments.pop(0)
            else:
                raise ObjectNotFound(path, f"unknown namespace {namespace}")
        else:
            cid = segments.pop(0)
        if cid not in self.nodes:
            raise ObjectNotFound(path, f"block {cid} not found")
        for name in segments:
            kind, content = self.nodes[cid]
            if kind != DIRECTORY or name not in content:
                raise ObjectNotFound(path, f"no link named {name!r} under {cid}")
            cid = content[name]
        return cid

    def link_type(self, cid: str) -> str:
        """Return the kind of node cid refers to."""
        try:
            return self.nodes[cid][0]
        except KeyError:
            return UNKNOWN

    def ls(self, path: str) -> list[Link]:
        """List the links of a directory node."""
        cid = self._lookup(path)
        kind, content = self.nodes[cid]
        if kind != DIRECTORY:
            raise ListingFailure(path, f"{cid} is not a directory")
        return [
            Link(name, self.link_type(target), target, self._size(target))
            for name, target in sorted(content.items())
        ]

    def _size(self, cid: str) -> int:
        kind, content = self.nodes.get(cid, (UNKNOWN, b""))
        if kind == DIRECTORY:
            return 0
        return len(content)

    def cat(self, path: str) -> bytes:
        """Read the contents of a file node."""
        cid = self._lookup(path)
        kind, content = self.nodes[cid]
        if kind == DIRECTORY:
            raise FetchFailure(path, f"{cid} is a directory")
        return content

    def add(self, data: bytes) -> str:
        """Store data as a file and return its CID."""
        cid = encode_cid(RAW, SHA2_256, hashlib.sha256(data).digest())
        self.nodes[cid] = (FILE, bytes(data))
        return cid

    def dag_put(self, data: bytes) -> str:
        """Store data as a raw git block and return the block's CID."""
        cid = encode_cid(GIT_RAW, SHA1, hashlib.sha1(data).digest())
        self.nodes[cid] = (UNKNOWN, bytes(data))
        return cid

    def block_get(self, cid: str) -> bytes:
        """Retrieve the raw contents of a block."""
        try:
            kind, content = self.nodes[cid]
        except KeyError as exc:
            raise ObjectNotFound(cid, "block not found") from exc
        if kind == DIRECTORY:
            raise FetchFailure(cid, "directory blocks are not supported")
        return content

    def new_directory(self) -> str:
        """Return the CID of an empty directory node."""
        return self._store_directory({})

    def patch_link(self, root: str, path: str, target: str, create: bool = True) -> str:
        """Attach target under path below root."""
        segments = [s for s in path.split("/") if s]
        if not segments:
            raise PatchFailure(path, "empty link path")
        try:
            root_cid = self._lookup(root)
        except ObjectNotFound as exc:
            raise PatchFailure(root, str(exc)) from exc
        return self._patch(root_cid, segments, target, create, path)

    def _patch(
        self, cid: str, segments: list[str], target: str, create: bool, path: str
    ) -> str:
        kind, content = self.nodes[cid]
        if kind != DIRECTORY:
            raise PatchFailure(path, f"{cid} is not a directory")
        entries = dict(content)
        name = segments[0]
        if len(segments) == 1:
            entries[name] = target
            return self._store_directory(entries)
        child = entries.get(name)
        if child is None:
            if not create:
                raise PatchFailure(path, f"no link named {name!r} under {cid}")
            child = self.new_directory()
        elif self.link_type(child) != DIRECTORY:
            raise PatchFailure(path, f"{posixpath.join(cid, name)} is not a directory")
        entries[name] = self._patch(child, segments[1:], target, create, path)
        return self._store_directory(entries)

    def name_publish(self, cid: str, key: str = "self") -> str:
        """Point the IPNS name of key at cid and return the name."""
        self.names[key] = self._lookup(cid)
        return key
