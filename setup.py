"""
Setup script for uaps-engine.

UAPS (Undersea Aging Prediction System) estimates how a sparkling wine
evolves during undersea aging. It serves three roles:

1. Trainer - Aggregates terrestrial aging records into cluster statistics
2. Predictor - Physics-corrected flavor/quality curves and harvest windows
3. Ensemble - Blends an external model's qualitative estimate with statistics

The 'uaps' command is the primary entry point.
"""

from setuptools import find_packages, setup

setup(
    name="uaps-engine",
    version="1.0.0",
    description="Undersea aging prediction engine for sparkling wine",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="UAPS",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # AI
        "google-generativeai>=0.3.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "uaps=uaps.cli:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Science/Research",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering",
    ],
    keywords="wine aging prediction undersea arrhenius",
)
