#!/usr/bin/env python3
"""
Setup configuration for Cloud Spend
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

# Read requirements
with open(os.path.join(this_directory, 'requirements.txt')) as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith('#')]

setup(
    name="cloud-spend",
    version="1.0.0",
    author="Cloud Spend Team",
    author_email="admin@example.com",
    description="Cloud billing ingestion, summaries, forecasts and budget alerts for AWS, Azure and GCP",
    long_description=long_description,
    long_description_content_type="text/markdown",
    # Modules import each other relatively under the top-level "src" package
    packages=find_packages(exclude=['tests', 'tests.*']),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Monitoring",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    include_package_data=True,
    data_files=[
        ('config', ['config/config.yaml', 'config/free_tier_limits.yaml']),
    ],
    extras_require={
        'dev': [
            'pytest>=7.4.0',
        ],
    },
    keywords="cloud cost billing forecast budget alerts aws azure gcp sqlite",
)
