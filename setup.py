#!/usr/bin/env python
# -*- coding: utf-8 -*-
from setuptools import setup, find_packages
import sys

assert sys.version_info >= (3, 7, 0), "Python 3.7+ is required"
from pathlib import Path  # noqa E402

CURRENT_DIR = Path(__file__).parent

with open(CURRENT_DIR / "requirements.txt", encoding="utf8") as f:
    REQUIREMENTS = f.readlines()

with open(CURRENT_DIR / "requirements_dev.txt", encoding="utf8") as f:
    DEV_REQUIREMENTS = f.readlines()

setup(
    name="brainz-scrobbler",
    version="0.1.0",
    description="ListenBrainz scrobbler with OAuth2 login and a durable submission queue",
    author="brainz-scrobbler contributors",
    license="GNU General Public License v3 (GPLv3)",
    packages=find_packages(exclude=["tests", "tests.*", "*.tests", "*.tests.*"]),
    python_requires=">=3.7",
    install_requires=REQUIREMENTS,
    extras_require={"test": DEV_REQUIREMENTS},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Programming Language :: Python :: 3",
    ],
)
