# cid.py -- Conversion between git object ids and content identifiers
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

"""Conversion between git object ids and IPFS content identifiers (CIDs).

A git object stored as a ``git-raw`` block is addressed by a version 1 CID::

    <multibase prefix><varint version><varint codec><varint hash code>
    <varint digest length><digest>

The digest of such a CID is the SHA-1 of the raw git object, so the git object
id can be read straight out of it and vice versa.
"""

__all__ = [
    "DAG_PB",
    "GIT_RAW",
    "RAW",
    "SHA1",
    "SHA2_256",
    "cid_to_sha",
    "decode_cid",
    "encode_cid",
    "sha_to_cid",
]

import base64
import binascii

from dulwich.objects import hex_to_sha, sha_to_hex
from dulwich.index import _decode_varint as decode_varint
from dulwich.index import _encode_varint as encode_varint

from .errors import MalformedIdentifier

# Multicodec table entries
RAW = 0x55
DAG_PB = 0x70
GIT_RAW = 0x78

# Multihash function codes
SHA1 = 0x11
SHA2_256 = 0x12

SHA1_LENGTH = 20


def _read_varint(raw: bytes, pos: int) -> tuple[int, int]:
    if pos >= len(raw):
        raise ValueError("truncated CID header")
    value, pos = decode_varint(raw, pos)
    if raw[pos - 1] & 0x80:
        raise ValueError("truncated varint")
    return value, pos


def _multibase_decode(text: str) -> bytes:
    if not text:
        raise ValueError("empty identifier")
    prefix, body = text[0], text[1:]
    if prefix in "bB":
        body = body.upper()
        body += "=" * (-len(body) % 8)
        return base64.b32decode(body)
    if prefix in "fF":
        return binascii.unhexlify(body)
    if text.startswith("Qm"):
        raise ValueError("CIDv0 does not address git objects")
    raise ValueError(f"unsupported multibase prefix {prefix!r}")


def encode_cid(codec: int, hash_code: int, digest: bytes) -> str:
    """Build the base32 string form of a version 1 CID.

    Args:
      codec: Multicodec of the addressed content
      hash_code: Multihash function code
      digest: Raw digest bytes
    Returns: CID string with the ``b`` multibase prefix
    """
    raw = (
        encode_varint(1)
        + encode_varint(codec)
        + encode_varint(hash_code)
        + encode_varint(len(digest))
        + digest
    )
    return "b" + base64.b32encode(raw).decode("ascii").rstrip("=").lower()


def decode_cid(text: str) -> tuple[int, int, int, bytes]:
    """Parse a version 1 CID string.

    Args:
      text: CID in base32 or base16 multibase
    Returns: tuple of (version, codec, hash_code, digest)
    Raises:
      MalformedIdentifier: if the CID can not be parsed
    """
    try:
        raw = _multibase_decode(text)
        version, pos = _read_varint(raw, 0)
        codec, pos = _read_varint(raw, pos)
        hash_code, pos = _read_varint(raw, pos)
        length, pos = _read_varint(raw, pos)
    except (ValueError, binascii.Error) as exc:
        raise MalformedIdentifier(text, str(exc)) from exc
    if version != 1:
        raise MalformedIdentifier(text, f"unsupported CID version {version}")
    digest = raw[pos:]
    if len(digest) != length:
        raise MalformedIdentifier(
            text, f"digest is {len(digest)} bytes, header says {length}"
        )
    return version, codec, hash_code, digest


def cid_to_sha(cid: str) -> bytes:
    """Extract the git object id addressed by a CID.

    Args:
      cid: CID string
    Returns: 40 byte hex object id
    Raises:
      MalformedIdentifier: if the CID does not carry a SHA-1 digest
    """
    _, _, hash_code, digest = decode_cid(cid)
    if hash_code != SHA1:
        raise MalformedIdentifier(cid, f"multihash 0x{hash_code:x} is not sha1")
    if len(digest) != SHA1_LENGTH:
        raise MalformedIdentifier(cid, f"sha1 digest has length {len(digest)}")
    return sha_to_hex(digest)


def sha_to_cid(sha: bytes) -> str:
    """Build the CID of the git-raw block holding a git object.

    Args:
      sha: 40 byte hex object id, or 20 byte binary object id
    Returns: CID string
    Raises:
      MalformedIdentifier: if sha is not a valid object id
    """
    if len(sha) == SHA1_LENGTH:
        digest = sha
    elif len(sha) == 2 * SHA1_LENGTH:
        try:
            digest = hex_to_sha(sha)
        except ValueError as exc:
            raise MalformedIdentifier(sha, "not a hex object id") from exc
    else:
        raise MalformedIdentifier(sha, f"object id has length {len(sha)}")
    return encode_cid(GIT_RAW, SHA1, digest)
