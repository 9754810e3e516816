#!/usr/bin/env python3
"""
Setup script for DDNS Reconciler package.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="ddns-reconciler",
    version="1.0.0",
    author="DDNS Reconciler Team",
    author_email="team@example.com",
    description="Dynamic DNS record reconciliation service",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/example/ddns-reconciler",
    packages=find_packages(include=["ddns_reconciler", "ddns_reconciler.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: Name Service (DNS)",
        "Topic :: System :: Systems Administration",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": ["behave>=1.2.6"],
    },
    entry_points={
        "console_scripts": [
            "ddns-reconciler=ddns_reconciler.cli.main:main",
        ],
    },
    include_package_data=True,
)
