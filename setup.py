#!/usr/bin/env python3
"""
Setup script for Redshift ETL Pipeline Package
"""

from setuptools import setup, find_packages
from pathlib import Path

def get_version():
    """Extract version from __init__.py"""
    init_file = Path(__file__).parent / "redshift_etl" / "__init__.py"
    with open(init_file, "r") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.0.0"

def get_long_description():
    """Read README.md for package description"""
    readme_file = Path(__file__).parent / "README.md"
    if readme_file.exists():
        with open(readme_file, "r", encoding="utf-8") as f:
            return f.read()
    return "Redshift ETL Pipeline - stage record streams and bulk-load them into Amazon Redshift"

# Define dependency groups
INSTALL_REQUIRES = [
    "redshift-connector>=2.0.0",
    "boto3>=1.26.0",
    "jsonschema>=4.0.0",
    "tqdm>=4.60.0",
]

TEST_REQUIRES = [
    "pytest>=7.0.0",
    "pytest-cov>=3.0.0",
    "pytest-mock>=3.6.0",
]

LINT_REQUIRES = [
    "black>=22.0.0",
    "flake8>=4.0.0",
    "mypy>=0.950",
    "isort>=5.10.0",
]

setup(
    name="redshift-etl-pipeline",
    version=get_version(),
    author="Redshift ETL Team",
    description="Bulk-loading connector for Amazon Redshift: S3 staging, COPY and sink-mode policy",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",

    # Package configuration
    packages=find_packages(exclude=["tests*", "docs*", "scripts*", "*.tests", "*.tests.*"]),
    include_package_data=True,
    zip_safe=False,

    python_requires=">=3.8",

    install_requires=INSTALL_REQUIRES,

    extras_require={
        "test": TEST_REQUIRES,
        "lint": LINT_REQUIRES,
        "dev": TEST_REQUIRES + LINT_REQUIRES,
    },

    # Entry points for CLI
    entry_points={
        "console_scripts": [
            "redshift-etl=redshift_etl.cli.main:main",
            "rse=redshift_etl.cli.main:main",  # Short alias
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Database",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Environment :: Console",
    ],

    keywords="redshift etl pipeline s3 copy bulk-loading data-warehouse",
    platforms=["any"],
)
