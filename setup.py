#!/usr/bin/python3
# Setup file for git-remote-ipns
# Copyright (C) 2026 The git-remote-ipns Authors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

tests_require = ["pytest"]


setup(
    name="git-remote-ipns",
    version="0.1.0",
    description="Git remote helper for repositories published on IPFS/IPNS",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    license="Apache-2.0 OR GPL-2.0-or-later",
    packages=["git_remote_ipns"],
    package_data={"": ["py.typed"]},
    python_requires=">=3.9",
    install_requires=["dulwich>=0.25.0", "urllib3>=1.25"],
    extras_require={"test": tests_require},
    entry_points={
        "console_scripts": [
            "git-remote-ipns=git_remote_ipns.remote_helper:_main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control",
    ],
)
