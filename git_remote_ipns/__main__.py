"""Entry point for running git-remote-ipns as a module.

This module allows the remote helper to be run using the -m flag:
    python -m git_remote_ipns <remote> <url>
"""

from . import remote_helper

if __name__ == "__main__":
    remote_helper._main()
