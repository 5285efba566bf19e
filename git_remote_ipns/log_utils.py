# log_utils.py -- Logging utilities for git-remote-ipns
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

"""Logging utilities for git-remote-ipns.

The package logs through the ``git_remote_ipns`` logger, which carries a null
handler so that library users see nothing unless they configure logging
themselves. The remote helper calls :func:`default_logging_config`, which
sends records to stderr; stdout belongs to the remote helper protocol and must
never receive log output.

Like git itself, the helper honours ``GIT_TRACE``.
"""

__all__ = [
    "default_logging_config",
    "getLogger",
    "remove_null_handler",
    "set_verbosity",
]

import logging
import os
import sys
from typing import Optional, Union

getLogger = logging.getLogger

_TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_PACKAGE_LOGGER = getLogger("git_remote_ipns")
_PACKAGE_LOGGER.addHandler(_NULL_HANDLER)


def _get_trace_target(environ=None) -> Optional[Union[str, int]]:
    """Get the trace target from the GIT_TRACE environment variable.

    Returns:
        - None if tracing is disabled
        - 2 for stderr output (values "1", "2", "true")
        - int (3-9) for a file descriptor
        - str for an absolute file or directory path
    """
    if environ is None:
        environ = os.environ
    trace_value = environ.get("GIT_TRACE", "")

    if not trace_value or trace_value.lower() in ("0", "false"):
        return None

    if trace_value.lower() in ("1", "2", "true"):
        return 2

    try:
        fd = int(trace_value)
    except ValueError:
        pass
    else:
        if 3 <= fd <= 9:
            return fd
        return None

    if os.path.isabs(trace_value):
        return trace_value

    return None


def _trace_handler(target: Union[str, int]) -> Optional[logging.Handler]:
    if target == 2:
        return logging.StreamHandler(sys.stderr)
    if isinstance(target, int):
        try:
            stream = os.fdopen(target, "w", buffering=1)
        except OSError as e:
            sys.stderr.write(f"Warning: Failed to open GIT_TRACE fd {target}: {e}\n")
            return None
        return logging.StreamHandler(stream)
    if os.path.isdir(target):
        target = os.path.join(target, f"trace.{os.getpid()}")
    try:
        return logging.FileHandler(target, mode="a")
    except OSError as e:
        sys.stderr.write(f"Warning: Failed to open GIT_TRACE file {target}: {e}\n")
        return None


def set_verbosity(verbosity: int) -> None:
    """Adjust the package log level to git's verbosity.

    Args:
      verbosity: 0 for quiet, 1 for normal and 2 or more for verbose output
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    if _get_trace_target() is not None:
        level = logging.DEBUG
    _PACKAGE_LOGGER.setLevel(level)


def default_logging_config(verbosity: int = 1) -> None:
    """Set up logging for the remote helper.

    Records go to stderr. If ``GIT_TRACE`` is enabled, everything down to
    DEBUG is logged with timestamps, to stderr or to the trace target.

    Args:
      verbosity: Initial verbosity, see set_verbosity
    """
    remove_null_handler()

    handler: Optional[logging.Handler] = None
    trace_target = _get_trace_target()
    if trace_target is not None:
        handler = _trace_handler(trace_target)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler.setFormatter(logging.Formatter(_TRACE_FORMAT))
    _PACKAGE_LOGGER.addHandler(handler)
    set_verbosity(verbosity)


def remove_null_handler() -> None:
    """Remove the null handler from the package logger.

    If a caller wants to set up logging using something other than
    default_logging_config, calling this function first is a minor optimization
    to avoid the overhead of using the _NullHandler.
    """
    _PACKAGE_LOGGER.removeHandler(_NULL_HANDLER)
