"""Setup script for inflight."""

from setuptools import find_packages, setup

setup(
    name="inflight",
    version="0.1.0",
    description="Request concurrency analysis for HTTP access logs",
    author="inflight developers",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "simpy>=4.0",
        "numpy>=1.24",
        "pandas>=2.0",
        "pyyaml>=6.0",
        "pydantic>=2.0",
        "click>=8.1",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "inflight=inflight.cli:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
