# errors.py -- errors for git-remote-ipns
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

"""Exception classes raised by git-remote-ipns."""

__all__ = [
    "FetchFailure",
    "IntegrityMismatch",
    "ListingFailure",
    "MalformedIdentifier",
    "NotProvided",
    "ObjectNotFound",
    "PatchFailure",
    "RefResolutionFailure",
    "SessionFinished",
    "ShellError",
    "UnrecognizedLinkType",
]

from typing import Optional

from dulwich.errors import ChecksumMismatch


class MalformedIdentifier(Exception):
    """A content identifier could not be translated to a git object id."""

    def __init__(self, identifier: object, reason: str) -> None:
        """Initialize a MalformedIdentifier.

        Args:
          identifier: The identifier (or object id) that failed to translate
          reason: Human readable description of the problem
        """
        self.identifier = identifier
        self.reason = reason
        Exception.__init__(self, f"malformed identifier {identifier!r}: {reason}")


class NotProvided(Exception):
    """The large object index has no entry for an object.

    Callers should fetch the object from another source.
    """

    def __init__(self, cid: str) -> None:
        self.cid = cid
        Exception.__init__(self, f"{cid} is not provided by the large object index")


class IntegrityMismatch(ChecksumMismatch):
    """Fetched content does not hash to the identifier it was requested by."""

    def __init__(self, expected: str, got: str) -> None:
        ChecksumMismatch.__init__(
            self, expected, got, "external object content does not match"
        )


class ShellError(Exception):
    """Base class for failures reported by the storage shell."""

    def __init__(self, path: str, message: Optional[str] = None) -> None:
        """Initialize a ShellError.

        Args:
          path: The path or identifier the failing operation acted on
          message: Optional error message from the store
        """
        self.path = path
        self.message = message
        if message:
            Exception.__init__(self, f"{path}: {message}")
        else:
            Exception.__init__(self, path)


class ObjectNotFound(ShellError):
    """A path or link does not exist in the store."""


class ListingFailure(ShellError):
    """Listing a directory node failed."""


class FetchFailure(ShellError):
    """Retrieving content failed."""


class PatchFailure(ShellError):
    """Creating a patched tree node failed."""


class RefResolutionFailure(Exception):
    """A local reference is missing or does not point at an object."""

    def __init__(self, ref: bytes, reason: Optional[str] = None) -> None:
        self.ref = ref
        message = f"unable to resolve {ref.decode('utf-8', 'replace')}"
        if reason:
            message += f": {reason}"
        Exception.__init__(self, message)


class UnrecognizedLinkType(Exception):
    """A tree link has a type that is neither file, directory nor unknown."""

    def __init__(self, path: str, link_type: object) -> None:
        self.path = path
        self.link_type = link_type
        Exception.__init__(self, f"unexpected link type {link_type!r} for {path}")


class SessionFinished(Exception):
    """The session has already been finished."""
