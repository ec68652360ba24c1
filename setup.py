"""Setup configuration for vaultpool."""

import os
import sys

from setuptools import find_packages, setup

# Get version from package
here = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, os.path.join(here, "vaultpool"))
try:
    from vaultpool import __author__, __version__
except ImportError:
    __version__ = "0.1.0"
    __author__ = "vaultpool maintainers"

# Get the long description from the README file
with open(os.path.join(here, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="vaultpool",
    version=__version__,
    description="Vault dynamic credential rotation for database connection pools",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author=__author__,
    keywords="vault hashicorp credentials rotation connection pool sqlalchemy",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0.0",
        "pyyaml>=6.0",
        "jsonschema>=4.0.0",
        "hvac>=1.0.0",
        "requests>=2.25.0",
        "apscheduler>=3.9,<4",
        "sqlalchemy>=1.4.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.12.0",
            "mypy>=0.991",
        ],
    },
    entry_points={
        "console_scripts": [
            "vaultpool=vaultpool.cli:cli",
        ],
    },
)
