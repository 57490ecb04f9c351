#!/usr/bin/env python3
"""
Setup configuration for chart-finder
Find rhythm game charts for the songs you listen to
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "rich>=13.7.0",
    "pyyaml>=6.0.1",
    "requests>=2.31.0",
    "rapidfuzz>=3.5.0",
    "tqdm>=4.66.1",
]

setup(
    name="chart-finder",
    version="0.1.0",
    author="chart-finder Team",
    description="Recommend rhythm game charts from your listening history and local library",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["chart_finder", "chart_finder.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Games/Entertainment",
        "Topic :: Multimedia :: Sound/Audio",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "chartfind=chart_finder.cli:main",
        ],
    },
    keywords="clone hero charts rhythm game spotify history recommendations cli",
)
