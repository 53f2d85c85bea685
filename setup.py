#!/usr/bin/env python3
"""
Setup script for quectelbridge.
"""

from setuptools import setup, find_packages

setup(
    name="quectelbridge",
    version="0.1.0",
    description="Drive Quectel cellular modems through a SCPI serial bridge in pass-through mode",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pyserial>=3.5",
        "pyserial-asyncio>=0.6",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-timeout>=2.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "quectel-bridge=quectelbridge.cli:main",
        ],
    },
    keywords=["quectel", "modem", "cellular", "at-commands", "scpi", "serial", "iot", "nb-iot"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Communications",
        "Topic :: System :: Hardware :: Hardware Drivers",
        "Operating System :: POSIX :: Linux",
        "License :: OSI Approved :: MIT License",
    ],
)
